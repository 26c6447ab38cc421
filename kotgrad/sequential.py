"""Layer-by-layer network assembled with chained builder calls."""

from __future__ import annotations

from typing import Any, Iterable, List

from kotgrad.layers import (
    Activation,
    ActivationType,
    Dropout,
    InputLayer,
    Linear,
    Module,
    OutputLayer,
)
from kotgrad.tensor import Tensor
from kotgrad.training import TrainableNetwork


class Sequential(TrainableNetwork):
    """A network whose layers are appended one call at a time and then frozen by ``build``."""

    _label = "Sequential"

    def __init__(self) -> None:
        super().__init__()
        self._built = False

    # ----------------------------------------------------------------- builder

    def _append(self, module: Module) -> "Sequential":
        if self._built:
            raise RuntimeError("Cannot modify Sequential after build() has been called")
        self._layers.append(module)
        return self

    def input(self, input_size: int) -> "Sequential":
        """Append an input layer that checks the feature count."""
        return self._append(InputLayer(input_size))

    def linear(self, input_size: int, output_size: int, use_bias: bool = True) -> "Sequential":
        """Append a fully connected layer."""
        return self._append(Linear(input_size, output_size, use_bias))

    def activation(self, activation: ActivationType) -> "Sequential":
        """Append an element-wise activation layer."""
        return self._append(Activation(activation))

    def relu(self) -> "Sequential":
        """Append a ReLU activation."""
        return self.activation(ActivationType.RELU)

    def sigmoid(self) -> "Sequential":
        """Append a sigmoid activation."""
        return self.activation(ActivationType.SIGMOID)

    def tanh(self) -> "Sequential":
        """Append a tanh activation."""
        return self.activation(ActivationType.TANH)

    def dropout(self, rate: float) -> "Sequential":
        """Append a dropout layer."""
        return self._append(Dropout(rate))

    def output(
        self,
        input_size: int,
        output_size: int,
        activation: ActivationType = ActivationType.NONE,
    ) -> "Sequential":
        """Append an output layer: linear followed by an optional activation."""
        return self._append(OutputLayer(input_size, output_size, activation))

    def add(self, module: Module) -> "Sequential":
        """Append an arbitrary module."""
        if not isinstance(module, Module):
            raise TypeError("Only Module instances can be added to Sequential")
        return self._append(module)

    def build(self) -> "Sequential":
        """Freeze the layer list; the network can then be used."""
        if self._built:
            raise RuntimeError("build() has already been called")
        self._built = True
        return self

    @property
    def is_built(self) -> bool:
        """Whether ``build`` has been called."""
        return self._built

    # ------------------------------------------------------------------- usage

    def forward(self, x: Tensor) -> Tensor:
        if not self._built:
            raise RuntimeError("Sequential must be built before use. Call build() first.")
        return super().forward(x)

    def _compile_report(self) -> List[str]:
        lines = super()._compile_report()
        lines[0] = "Sequential model compiled successfully:"
        lines.append(f"  Layers: {len(self._layers)}")
        return lines

    def compile(self, optimizer: Any, loss: Any) -> None:
        """Attach an optimizer and a loss; the network must already be built."""
        if not self._built:
            raise RuntimeError(
                "Sequential must be built before compilation. Call build() first."
            )
        super().compile(optimizer, loss)

    def predict(self, inputs: Iterable[Tensor]) -> List[Tensor]:
        """Outputs for each input, computed in evaluation mode."""
        if not self._built:
            raise RuntimeError(
                "Sequential must be built before prediction. Call build() first."
            )
        return super().predict(inputs)

    @staticmethod
    def _layer_details(layer: Module) -> str:
        if isinstance(layer, Linear):
            return f" ({layer.input_size} -> {layer.output_size})"
        if isinstance(layer, InputLayer):
            return f" (size: {layer.input_size})"
        if isinstance(layer, OutputLayer):
            return f" ({layer.input_size} -> {layer.output_size})"
        if isinstance(layer, Dropout):
            return f" (rate: {layer.rate:g})"
        return ""

    def summary(self) -> str:
        """Print and return a description of the layers and the parameter count."""
        if not self._built:
            text = "Sequential (not built yet)"
        else:
            lines = ["Sequential Architecture:"]
            lines.extend(
                f"  Layer {i}: {layer.name}{self._layer_details(layer)}"
                for i, layer in enumerate(self._layers)
            )
            lines.append(f"Total parameters: {self.count_parameters()}")
            text = "\n".join(lines)
        print(text)
        return text

    @property
    def name(self) -> str:
        return f"Sequential({len(self._layers)} layers)"