"""Shared training loop for layered networks: compile, fit, evaluate, predict."""

from __future__ import annotations

import math
import sys
from typing import Any, Iterable, List, Optional, Sequence

from kotgrad.layers import Activation, Linear, Module, activation_derivative
from kotgrad.progress import ProgressBar
from kotgrad.tensor import Tensor


def _display_name(component: Any) -> str:
    """The component's ``name`` (attribute or method), else its class name."""
    name = getattr(component, "name", None)
    if callable(name):
        name = name()
    return str(name) if name else type(component).__name__


class TrainableNetwork(Module):
    """A chain of modules that can be compiled with an optimizer and a loss and trained.

    The optimizer must provide ``clear_parameters()``, ``add_parameter(tensor)``,
    ``zero_grad()`` and ``step()``. The loss must provide ``forward(prediction, target)``
    returning a tensor whose first element is the loss value, and
    ``backward(prediction, target)`` returning the gradient with respect to the prediction.
    """

    _label = "Model"

    def __init__(self, layers: Iterable[Module] = ()) -> None:
        super().__init__()
        self._layers: List[Module] = list(layers)
        self._optimizer: Any = None
        self._loss: Any = None
        self._compiled = False

    # ------------------------------------------------------------- structure

    def __len__(self) -> int:
        return len(self._layers)

    def forward(self, x: Tensor) -> Tensor:
        output = x
        for layer in self._layers:
            output = layer.forward(output)
        return output

    def parameters(self) -> List[Tensor]:
        return [param for layer in self._layers for param in layer.parameters()]

    def set_training(self, training: bool) -> None:
        super().set_training(training)
        for layer in self._layers:
            layer.set_training(training)

    def zero_grad(self) -> None:
        for layer in self._layers:
            layer.zero_grad()

    def layer(self, index: int) -> Module:
        """The module at ``index`` in the chain."""
        if not 0 <= index < len(self._layers):
            raise IndexError("Layer index out of range")
        return self._layers[index]

    def count_parameters(self) -> int:
        """Total number of scalar parameters."""
        return sum(param.size for param in self.parameters())

    # --------------------------------------------------------------- training

    @property
    def is_compiled(self) -> bool:
        """Whether ``compile`` has attached an optimizer and a loss."""
        return self._compiled

    @property
    def optimizer(self) -> Any:
        """The optimizer given to ``compile``, or None."""
        return self._optimizer

    @property
    def loss_function(self) -> Any:
        """The loss given to ``compile``, or None."""
        return self._loss

    def _compile_report(self) -> List[str]:
        return [
            "Model compiled successfully:",
            f"  Optimizer: {_display_name(self._optimizer)}",
            f"  Loss function: {_display_name(self._loss)}",
            f"  Parameters: {self.count_parameters()}",
        ]

    def compile(self, optimizer: Any, loss: Any) -> None:
        """Attach an optimizer and a loss and register every parameter with the optimizer."""
        if optimizer is None:
            raise ValueError("Optimizer cannot be null")
        if loss is None:
            raise ValueError("Loss function cannot be null")
        self._optimizer = optimizer
        self._loss = loss
        optimizer.clear_parameters()
        for param in self.parameters():
            optimizer.add_parameter(param)
        self._compiled = True
        print("\n".join(self._compile_report()))

    def fit(
        self,
        inputs: Sequence[Tensor],
        targets: Sequence[Tensor],
        epochs: int = 100,
        batch_size: int = 32,
        validation_inputs: Optional[Sequence[Tensor]] = None,
        validation_targets: Optional[Sequence[Tensor]] = None,
        verbose: bool = True,
    ) -> List[float]:
        """Train for ``epochs`` epochs and return the mean training loss of each epoch.

        A ``batch_size`` of zero or less trains on the whole set as one batch.
        Training stops early if an epoch's loss is not finite.
        """
        if not self._compiled:
            raise RuntimeError("Model must be compiled before training. Call compile() first.")
        if len(inputs) != len(targets):
            raise ValueError("Number of training inputs and targets must match")
        if not inputs:
            raise ValueError("Training data cannot be empty")
        has_validation = validation_inputs is not None and validation_targets is not None
        if has_validation and len(validation_inputs) != len(validation_targets):
            raise ValueError("Number of validation inputs and targets must match")

        num_samples = len(inputs)
        mini_batch = 0 < batch_size < num_samples

        if verbose:
            print(f"\nStarting {self._label} training...")
            print(f"Training samples: {num_samples}")
            print(f"Epochs: {epochs}")
            print(f"Batch size: {batch_size if batch_size > 0 else 'full batch'}")
            if has_validation:
                print(f"Validation samples: {len(validation_inputs)}")
            print()

        progress = (
            ProgressBar(epochs, num_samples if mini_batch else 0) if verbose else None
        )
        step = batch_size if batch_size > 0 else num_samples
        history: List[float] = []

        for epoch in range(1, epochs + 1):
            self.set_training(True)
            epoch_loss = 0.0
            num_batches = 0

            for start in range(0, num_samples, step):
                end = min(start + step, num_samples)
                batch_loss = 0.0
                self._optimizer.zero_grad()
                for x, target in zip(inputs[start:end], targets[start:end]):
                    prediction = self.forward(x)
                    batch_loss += self._loss.forward(prediction, target)[0]
                    output_grad = self._loss.backward(prediction, target)
                    self._backward_pass(x, output_grad)
                self._optimizer.step()

                epoch_loss += batch_loss / (end - start)
                num_batches += 1
                if progress is not None and mini_batch:
                    progress.update(epoch, epoch_loss / num_batches, sample=end)

            epoch_loss /= num_batches
            history.append(epoch_loss)

            if not math.isfinite(epoch_loss):
                if progress is not None:
                    progress.finish()
                print(
                    f"Warning: Numerical instability detected at epoch {epoch} "
                    f"(loss = {epoch_loss}). Consider reducing learning rate.",
                    file=sys.stderr,
                )
                break

            if has_validation:
                self.evaluate(validation_inputs, validation_targets)

            if progress is not None:
                if mini_batch:
                    progress.finish_epoch()
                else:
                    progress.update(epoch, epoch_loss)

        if verbose:
            if progress is not None:
                progress.finish()
            print(f"{self._label} training completed!")

        return history

    def evaluate(self, inputs: Sequence[Tensor], targets: Sequence[Tensor]) -> float:
        """Mean loss over a data set, computed in evaluation mode."""
        if not self._compiled:
            raise RuntimeError("Model must be compiled before evaluation. Call compile() first.")
        if len(inputs) != len(targets):
            raise ValueError("Number of inputs and targets must match")
        if not inputs:
            raise ValueError("Evaluation data cannot be empty")
        self.set_training(False)
        total = sum(
            self._loss.forward(self.forward(x), target)[0] for x, target in zip(inputs, targets)
        )
        return total / len(inputs)

    def predict(self, inputs: Iterable[Tensor]) -> List[Tensor]:
        """Outputs for each input, computed in evaluation mode."""
        self.set_training(False)
        return [self.forward(x) for x in inputs]

    # -------------------------------------------------------------- internals

    @staticmethod
    def _ensure_grad(param: Tensor) -> List[float]:
        if not param.grad:
            param.requires_grad = True
        return param.grad

    def _backward_pass(self, x: Tensor, output_grad: Tensor) -> None:
        """Accumulate parameter gradients for one sample by the chain rule."""
        activations = [x]
        current = x
        for layer in self._layers:
            current = layer.forward(current)
            activations.append(current)

        grad = list(output_grad.data)

        for index in reversed(range(len(self._layers))):
            layer = self._layers[index]
            layer_input = activations[index].data
            params = layer.parameters()

            if params:
                if not isinstance(layer, Linear):
                    continue
                n_in, n_out = layer.input_size, layer.output_size
                inputs = [layer_input[k] if k < len(layer_input) else 0.0 for k in range(n_in)]
                grads_out = [grad[o] if o < len(grad) else 0.0 for o in range(n_out)]

                weight = params[0]
                weight_grad = self._ensure_grad(weight)
                for o, g in enumerate(grads_out):
                    row = o * n_in
                    for k, a in enumerate(inputs):
                        if row + k < len(weight_grad):
                            weight_grad[row + k] += a * g

                if len(params) > 1:
                    bias_grad = self._ensure_grad(params[1])
                    for o in range(min(n_out, len(bias_grad), len(grad))):
                        bias_grad[o] += grad[o]

                if index > 0:
                    weights = weight.data
                    grad = [
                        sum(
                            weights[o * n_in + k] * grads_out[o]
                            for o in range(n_out)
                            if o * n_in + k < len(weights)
                        )
                        for k in range(n_in)
                    ]
            elif isinstance(layer, Activation):
                paired = [
                    g * activation_derivative(layer.activation, v)
                    for g, v in zip(grad, layer_input)
                ]
                grad = paired + [0.0] * (len(grad) - len(paired))