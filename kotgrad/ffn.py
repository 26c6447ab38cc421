"""Feed-forward network (multi-layer perceptron) built from a list of layer sizes."""

from __future__ import annotations

import sys
from typing import Iterable, List, Tuple

from kotgrad.layers import Activation, ActivationType, Dropout, Linear, Module, activation_name
from kotgrad.training import TrainableNetwork


class FFN(TrainableNetwork):
    """Linear layers with a hidden activation, optional dropout and an output activation."""

    _label = "FFN"

    def __init__(
        self,
        layer_sizes: Iterable[int],
        hidden_activation: ActivationType = ActivationType.RELU,
        output_activation: ActivationType = ActivationType.NONE,
        dropout_rate: float = 0.0,
    ) -> None:
        sizes = tuple(int(s) for s in layer_sizes)
        if len(sizes) < 2:
            raise ValueError("FFN requires at least 2 layer sizes (input and output)")
        self.layer_sizes: Tuple[int, ...] = sizes
        self.hidden_activation = ActivationType(hidden_activation)
        self.output_activation = ActivationType(output_activation)
        self.dropout_rate = float(dropout_rate)
        super().__init__(self._build_layers())

    def _build_layers(self) -> List[Module]:
        layers: List[Module] = []
        last = len(self.layer_sizes) - 2
        for i, (n_in, n_out) in enumerate(zip(self.layer_sizes, self.layer_sizes[1:])):
            layers.append(Linear(n_in, n_out))
            activation = self.output_activation if i == last else self.hidden_activation
            if activation is not ActivationType.NONE:
                layers.append(Activation(activation))
            if self.dropout_rate > 0.0 and i < last:
                layers.append(Dropout(self.dropout_rate))
        return layers

    @property
    def num_layers(self) -> int:
        """Number of linear layers."""
        return len(self.layer_sizes) - 1

    @property
    def input_size(self) -> int:
        """Number of input features."""
        return self.layer_sizes[0]

    @property
    def output_size(self) -> int:
        """Number of output features."""
        return self.layer_sizes[-1]

    def architecture(self) -> str:
        """Multi-line description of the layers and the parameter count."""
        lines = ["FFN Architecture:", f"Input size: {self.input_size}"]
        last = len(self.layer_sizes) - 2
        for i, (n_in, n_out) in enumerate(zip(self.layer_sizes, self.layer_sizes[1:])):
            line = f"Layer {i + 1}: {n_in} -> {n_out}"
            if i < last:
                line += f" + {activation_name(self.hidden_activation)}"
                if self.dropout_rate > 0.0:
                    line += f" + Dropout({self.dropout_rate:g})"
            elif self.output_activation is not ActivationType.NONE:
                line += f" + {activation_name(self.output_activation)}"
            lines.append(line)
        lines.append(f"Total parameters: {self.count_parameters()}")
        return "\n".join(lines)

    def print_architecture(self) -> str:
        """Write the architecture description to standard output and return it."""
        text = self.architecture()
        sys.stdout.write(text + "\n")
        sys.stdout.flush()
        return text

    @property
    def name(self) -> str:
        return "FFN"