"""Neural-network building blocks: the module base class and its layers."""

from __future__ import annotations

import math
import random
from enum import Enum
from typing import Callable, Dict, List, Optional

from kotgrad.tensor import Tensor

_rng = random.Random()


class ActivationType(Enum):
    """Element-wise activation functions."""

    NONE = "none"
    RELU = "relu"
    SIGMOID = "sigmoid"
    TANH = "tanh"


def _sigmoid(value: float) -> float:
    if value >= 0.0:
        return 1.0 / (1.0 + math.exp(-value))
    z = math.exp(value)
    return z / (1.0 + z)


_FUNCTIONS: Dict[ActivationType, Callable[[float], float]] = {
    ActivationType.NONE: lambda v: v,
    ActivationType.RELU: lambda v: v if v > 0.0 else 0.0,
    ActivationType.SIGMOID: _sigmoid,
    ActivationType.TANH: math.tanh,
}

_NAMES: Dict[ActivationType, str] = {
    ActivationType.RELU: "ReLU",
    ActivationType.SIGMOID: "Sigmoid",
    ActivationType.TANH: "Tanh",
}


def activation_name(activation: ActivationType) -> str:
    """Display name of an activation type."""
    return _NAMES.get(activation, "None")


def activation_derivative(activation: ActivationType, value: float) -> float:
    """Derivative of the activation at the pre-activation ``value``."""
    if activation is ActivationType.RELU:
        return 1.0 if value > 0.0 else 0.0
    if activation is ActivationType.SIGMOID:
        s = _sigmoid(value)
        return s * (1.0 - s)
    if activation is ActivationType.TANH:
        t = math.tanh(value)
        return 1.0 - t * t
    return 1.0


def _apply(activation: ActivationType, x: Tensor) -> Tensor:
    function = _FUNCTIONS[activation]
    return Tensor([function(v) for v in x.data], x.shape)


class Module:
    """Base class for layers and networks."""

    def __init__(self) -> None:
        self.training = True

    def forward(self, x: Tensor) -> Tensor:
        """Compute the module's output for ``x``."""
        raise NotImplementedError(f"{type(self).__name__} does not define forward")

    def __call__(self, x: Tensor) -> Tensor:
        return self.forward(x)

    def parameters(self) -> List[Tensor]:
        """Trainable tensors owned by the module."""
        return []

    def set_training(self, training: bool) -> None:
        """Switch between training and evaluation behaviour."""
        self.training = bool(training)

    def zero_grad(self) -> None:
        """Reset the gradients of every parameter."""
        for param in self.parameters():
            param.zero_grad()

    @property
    def name(self) -> str:
        """Short display name."""
        return type(self).__name__


class Linear(Module):
    """Fully connected layer: ``y = x W^T + b`` with W stored as (output, input)."""

    def __init__(self, input_size: int, output_size: int, use_bias: bool = True) -> None:
        super().__init__()
        if input_size <= 0 or output_size <= 0:
            raise ValueError("Layer sizes must be positive")
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.use_bias = bool(use_bias)
        limit = math.sqrt(6.0 / (self.input_size + self.output_size))
        self.weight = Tensor(None, (self.output_size, self.input_size), True)
        self.weight.data[:] = [_rng.uniform(-limit, limit) for _ in self.weight.data]
        self.bias: Optional[Tensor] = (
            Tensor.zeros((self.output_size,), True) if self.use_bias else None
        )

    def forward(self, x: Tensor) -> Tensor:
        if not x.shape or x.shape[-1] != self.input_size:
            raise ValueError(
                f"Linear layer expects last dimension {self.input_size}, got shape {x.shape}"
            )
        n_in = self.input_size
        rows = [x.data[r * n_in:(r + 1) * n_in] for r in range(x.size // n_in)]
        weights = self.weight.data
        weight_rows = [weights[o * n_in:(o + 1) * n_in] for o in range(self.output_size)]
        biases = self.bias.data if self.bias is not None else [0.0] * self.output_size
        values = [
            sum(a * w for a, w in zip(row, weight_row)) + b
            for row in rows
            for weight_row, b in zip(weight_rows, biases)
        ]
        return Tensor(values, x.shape[:-1] + (self.output_size,))

    def parameters(self) -> List[Tensor]:
        return [self.weight] if self.bias is None else [self.weight, self.bias]

    @property
    def name(self) -> str:
        return "Linear"


class Activation(Module):
    """Element-wise activation layer."""

    def __init__(self, activation: ActivationType = ActivationType.RELU) -> None:
        super().__init__()
        self.activation = ActivationType(activation)

    def forward(self, x: Tensor) -> Tensor:
        return _apply(self.activation, x)

    @property
    def name(self) -> str:
        return f"Activation({activation_name(self.activation)})"


class Dropout(Module):
    """Zeroes elements with probability ``rate`` during training (inverted dropout)."""

    def __init__(self, rate: float = 0.5) -> None:
        super().__init__()
        if not 0.0 <= rate < 1.0:
            raise ValueError("Dropout rate must be in [0, 1)")
        self.rate = float(rate)

    def forward(self, x: Tensor) -> Tensor:
        if not self.training or self.rate == 0.0:
            return Tensor(list(x.data), x.shape)
        keep = 1.0 - self.rate
        values = [v / keep if _rng.random() < keep else 0.0 for v in x.data]
        return Tensor(values, x.shape)

    @property
    def name(self) -> str:
        return "Dropout"


class InputLayer(Module):
    """Checks that inputs carry the expected number of features."""

    def __init__(self, input_size: int) -> None:
        super().__init__()
        if input_size <= 0:
            raise ValueError("Input size must be positive")
        self.input_size = int(input_size)

    def forward(self, x: Tensor) -> Tensor:
        if not x.shape or x.shape[-1] != self.input_size:
            raise ValueError(
                f"Input layer expects last dimension {self.input_size}, got shape {x.shape}"
            )
        return Tensor(list(x.data), x.shape)

    @property
    def name(self) -> str:
        return "InputLayer"


class OutputLayer(Module):
    """A linear layer followed by an optional activation."""

    def __init__(
        self,
        input_size: int,
        output_size: int,
        activation: ActivationType = ActivationType.NONE,
    ) -> None:
        super().__init__()
        self._linear = Linear(input_size, output_size)
        self.activation = ActivationType(activation)

    @property
    def input_size(self) -> int:
        """Number of input features."""
        return self._linear.input_size

    @property
    def output_size(self) -> int:
        """Number of output features."""
        return self._linear.output_size

    @property
    def weight(self) -> Tensor:
        """The weight matrix, shaped (output, input)."""
        return self._linear.weight

    @property
    def bias(self) -> Optional[Tensor]:
        """The bias vector."""
        return self._linear.bias

    def forward(self, x: Tensor) -> Tensor:
        return _apply(self.activation, self._linear.forward(x))

    def parameters(self) -> List[Tensor]:
        return self._linear.parameters()

    @property
    def name(self) -> str:
        return "OutputLayer"