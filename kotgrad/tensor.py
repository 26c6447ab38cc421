"""Dense float tensors with reverse-mode automatic differentiation."""

from __future__ import annotations

import math
import random
import threading
from numbers import Real
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

GradFunction = Callable[["Tensor"], Sequence["Tensor"]]

_rng = random.Random()
_state = threading.local()

_MAX_SHOWN = 10


def _in_progress() -> set:
    """Ids of tensors whose backward pass is running on this thread."""
    active = getattr(_state, "active", None)
    if active is None:
        active = set()
        _state.active = active
    return active


def _divide(a: float, b: float) -> float:
    """IEEE 754 division: zero divisors give inf, -inf or nan instead of raising."""
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _dot(xs: Iterable[float], ys: Iterable[float]) -> float:
    return sum(x * y for x, y in zip(xs, ys))


def _normalise_shape(shape: Iterable[int]) -> Tuple[int, ...]:
    return tuple(int(d) for d in shape)


class Tensor:
    """A flat, row-major buffer of floats with a shape and optional gradient."""

    def __init__(
        self,
        data: Optional[Iterable[float]] = None,
        shape: Optional[Iterable[int]] = None,
        requires_grad: bool = False,
    ) -> None:
        if data is None:
            dims = _normalise_shape(shape) if shape is not None else ()
            size = math.prod(dims) if dims else 0
            values = [0.0] * size
        else:
            values = [float(v) for v in data]
            dims = _normalise_shape(shape) if shape is not None else (len(values),)
            if len(values) != math.prod(dims):
                raise ValueError("Data size doesn't match shape")
        self._data: List[float] = values
        self._shape: Tuple[int, ...] = dims
        self._requires_grad = bool(requires_grad)
        self._grad: List[float] = [0.0] * len(values) if self._requires_grad else []
        self._grad_fn: Optional[GradFunction] = None
        self._parents: List[Optional[Tensor]] = []
        self._strides = self._compute_strides(dims)

    @staticmethod
    def _compute_strides(shape: Tuple[int, ...]) -> Tuple[int, ...]:
        strides = []
        step = 1
        for dim in reversed(shape):
            strides.append(step)
            step *= dim
        return tuple(reversed(strides))

    # ----------------------------------------------------------------- access

    @property
    def shape(self) -> Tuple[int, ...]:
        """The tensor's dimensions."""
        return self._shape

    @property
    def data(self) -> List[float]:
        """The underlying flat, mutable value list."""
        return self._data

    @property
    def grad(self) -> List[float]:
        """The flat, mutable gradient list (empty when gradients are off)."""
        return self._grad

    @property
    def requires_grad(self) -> bool:
        """Whether gradients are tracked for this tensor."""
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)
        if self._requires_grad:
            if len(self._grad) != len(self._data):
                self._grad = [0.0] * len(self._data)
        else:
            self._grad = []

    @property
    def size(self) -> int:
        """Total number of elements."""
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _check_flat_index(self, index: int) -> int:
        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeError("Tensor indices must be integers")
        if index < 0 or index >= len(self._data):
            raise IndexError("Index out of bounds")
        return index

    def __getitem__(self, index: int) -> float:
        return self._data[self._check_flat_index(index)]

    def __setitem__(self, index: int, value: float) -> None:
        self._data[self._check_flat_index(index)] = float(value)

    def _offset(self, indices: Sequence[int]) -> int:
        if len(indices) != len(self._shape):
            raise ValueError("Number of indices doesn't match tensor dimensions")
        offset = 0
        for idx, dim, stride in zip(indices, self._shape, self._strides):
            if idx < 0 or idx >= dim:
                raise IndexError("Index out of bounds")
            offset += idx * stride
        return offset

    def at(self, indices: Sequence[int]) -> float:
        """Element at a multi-dimensional index."""
        return self._data[self._offset(indices)]

    def set_at(self, indices: Sequence[int], value: float) -> None:
        """Assign the element at a multi-dimensional index."""
        self._data[self._offset(indices)] = float(value)

    # ------------------------------------------------------------- arithmetic

    def _require_same_shape(self, other: "Tensor", operation: str) -> None:
        if self._shape != other._shape:
            raise ValueError(f"Tensor shapes don't match for {operation}")

    def __add__(self, other):
        if isinstance(other, Tensor):
            self._require_same_shape(other, "addition")
            needs_grad = self._requires_grad or other._requires_grad
            result = Tensor(
                [x + y for x, y in zip(self._data, other._data)], self._shape, needs_grad
            )
            if needs_grad:
                result.set_grad_fn(lambda g: [g, g], [self, other])
            return result
        if isinstance(other, Real):
            scalar = float(other)
            result = Tensor([x + scalar for x in self._data], self._shape, self._requires_grad)
            if self._requires_grad:
                result.set_grad_fn(lambda g: [g], [self])
            return result
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, Real):
            return self + other
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Tensor):
            self._require_same_shape(other, "subtraction")
            needs_grad = self._requires_grad or other._requires_grad
            result = Tensor(
                [x - y for x, y in zip(self._data, other._data)], self._shape, needs_grad
            )
            if needs_grad:
                result.set_grad_fn(lambda g: [g, g * -1.0], [self, other])
            return result
        if isinstance(other, Real):
            scalar = float(other)
            result = Tensor([x - scalar for x in self._data], self._shape, self._requires_grad)
            if self._requires_grad:
                result.set_grad_fn(lambda g: [g], [self])
            return result
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, Real):
            scalar = float(other)
            return Tensor([scalar - x for x in self._data], self._shape, self._requires_grad)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, Tensor):
            self._require_same_shape(other, "multiplication")
            needs_grad = self._requires_grad or other._requires_grad
            result = Tensor(
                [x * y for x, y in zip(self._data, other._data)], self._shape, needs_grad
            )
            if needs_grad:
                left, right, shape = list(self._data), list(other._data), self._shape

                def grad_fn(g: Tensor) -> List[Tensor]:
                    return [
                        Tensor([gv * r for gv, r in zip(g.data, right)], shape),
                        Tensor([gv * lv for gv, lv in zip(g.data, left)], shape),
                    ]

                result.set_grad_fn(grad_fn, [self, other])
            return result
        if isinstance(other, Real):
            scalar = float(other)
            result = Tensor([x * scalar for x in self._data], self._shape, self._requires_grad)
            if self._requires_grad:
                result.set_grad_fn(lambda g: [g * scalar], [self])
            return result
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Real):
            return self * other
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Tensor):
            self._require_same_shape(other, "division")
            needs_grad = self._requires_grad or other._requires_grad
            result = Tensor(
                [_divide(x, y) for x, y in zip(self._data, other._data)],
                self._shape,
                needs_grad,
            )
            if needs_grad:
                left, right, shape = list(self._data), list(other._data), self._shape

                def grad_fn(g: Tensor) -> List[Tensor]:
                    return [
                        Tensor([_divide(gv, r) for gv, r in zip(g.data, right)], shape),
                        Tensor(
                            [
                                _divide(-gv * lv, r * r)
                                for gv, lv, r in zip(g.data, left, right)
                            ],
                            shape,
                        ),
                    ]

                result.set_grad_fn(grad_fn, [self, other])
            return result
        if isinstance(other, Real):
            scalar = float(other)
            result = Tensor(
                [_divide(x, scalar) for x in self._data], self._shape, self._requires_grad
            )
            if self._requires_grad:
                result.set_grad_fn(lambda g: [g / scalar], [self])
            return result
        return NotImplemented

    def __rtruediv__(self, other):
        if isinstance(other, Real):
            scalar = float(other)
            return Tensor(
                [_divide(scalar, x) for x in self._data], self._shape, self._requires_grad
            )
        return NotImplemented

    # --------------------------------------------------------- linear algebra

    def __matmul__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return self.matmul(other)

    def matmul(self, other: "Tensor") -> "Tensor":
        """Matrix product of two 2-D tensors."""
        if len(self._shape) != 2 or len(other._shape) != 2:
            raise ValueError("Matrix multiplication requires 2D tensors")
        if self._shape[1] != other._shape[0]:
            raise ValueError("Matrix dimensions don't match for multiplication")
        m, n = self._shape
        p = other._shape[1]
        needs_grad = self._requires_grad or other._requires_grad

        a_rows = [self._data[i * n:(i + 1) * n] for i in range(m)]
        b_cols = [other._data[j::p] for j in range(p)] if p else []
        result = Tensor(
            [_dot(row, col) for row in a_rows for col in b_cols], (m, p), needs_grad
        )

        if needs_grad:
            left, right = list(self._data), list(other._data)
            left_shape, right_shape = self._shape, other._shape

            def grad_fn(g: Tensor) -> List[Tensor]:
                g_rows = [g.data[i * p:(i + 1) * p] for i in range(m)]
                b_rows = [right[j * p:(j + 1) * p] for j in range(n)]
                grad_a = [_dot(g_row, b_row) for g_row in g_rows for b_row in b_rows]
                a_cols = [left[i::n] for i in range(n)] if n else []
                g_cols = [g.data[j::p] for j in range(p)] if p else []
                grad_b = [_dot(a_col, g_col) for a_col in a_cols for g_col in g_cols]
                return [Tensor(grad_a, left_shape), Tensor(grad_b, right_shape)]

            result.set_grad_fn(grad_fn, [self, other])
        return result

    def reshape(self, new_shape: Iterable[int]) -> "Tensor":
        """A copy with a different shape and the same number of elements."""
        dims = _normalise_shape(new_shape)
        if math.prod(dims) != len(self._data):
            raise ValueError("New shape size doesn't match tensor size")
        result = Tensor(list(self._data), dims, self._requires_grad)
        if self._requires_grad:
            result._grad = list(self._grad)
        return result

    def transpose(self) -> "Tensor":
        """Transposed copy of a 2-D tensor."""
        if len(self._shape) != 2:
            raise ValueError("Transpose currently only supports 2D tensors")
        rows, cols = self._shape
        values = [self._data[i * cols + j] for j in range(cols) for i in range(rows)]
        return Tensor(values, (cols, rows), self._requires_grad)

    # -------------------------------------------------------------- reduction

    def sum(self, axis: Optional[int] = None) -> "Tensor":
        """Sum of all elements, or along one axis."""
        if axis is None:
            result = Tensor([sum(self._data)], (1,), self._requires_grad)
            if self._requires_grad:
                input_shape = self._shape
                count = len(self._data)

                def grad_fn(g: Tensor) -> List[Tensor]:
                    return [Tensor([g.data[0]] * count, input_shape)]

                result.set_grad_fn(grad_fn, [self])
            return result

        if axis < 0 or axis >= len(self._shape):
            raise ValueError("Axis out of bounds")
        new_shape = self._shape[:axis] + self._shape[axis + 1:] or (1,)
        axis_size = self._shape[axis]
        outer = math.prod(self._shape[:axis])
        inner = math.prod(self._shape[axis + 1:])
        block = axis_size * inner
        blocks = [self._data[o * block:(o + 1) * block] for o in range(outer)]
        values = [sum(chunk[k::inner]) for chunk in blocks for k in range(inner)]
        return Tensor(values, new_shape, self._requires_grad)

    def mean(self, axis: Optional[int] = None) -> "Tensor":
        """Mean of all elements, or along one axis."""
        if axis is not None:
            summed = self.sum(axis)
            return summed / float(self._shape[axis])

        count = len(self._data)
        result = Tensor(
            [_divide(sum(self._data), float(count))], (1,), self._requires_grad
        )
        if self._requires_grad:
            input_shape = self._shape

            def grad_fn(g: Tensor) -> List[Tensor]:
                value = _divide(g.data[0], float(count))
                return [Tensor([value] * count, input_shape)]

            result.set_grad_fn(grad_fn, [self])
        return result

    # ------------------------------------------------------------- gradients

    def backward(self) -> None:
        """Propagate this tensor's gradient to every tensor it was computed from."""
        if not self._requires_grad:
            raise RuntimeError("Tensor doesn't require gradients")

        if len(self._data) == 1 and self._grad[0] == 0.0:
            self._grad[0] = 1.0

        active = _in_progress()
        key = id(self)
        if key in active:
            return
        active.add(key)
        try:
            if self._grad_fn is None:
                return
            grad_output = Tensor(list(self._grad), self._shape)
            parent_grads = self._grad_fn(grad_output)
            for parent, parent_grad in zip(self._parents, parent_grads):
                if parent is None or not parent._requires_grad:
                    continue
                accumulated = [g + v for g, v in zip(parent._grad, parent_grad.data)]
                parent._grad[: len(accumulated)] = accumulated
                parent.backward()
        finally:
            active.discard(key)

    def zero_grad(self) -> None:
        """Reset the gradient to zeros."""
        self._grad[:] = [0.0] * len(self._grad)

    def set_grad_fn(self, grad_fn: GradFunction, parents: Sequence[Optional["Tensor"]]) -> None:
        """Attach the function that maps this tensor's gradient to its parents'."""
        self._grad_fn = grad_fn
        self._parents = list(parents)

    # -------------------------------------------------------------- utilities

    def fill(self, value: float) -> None:
        """Set every element to ``value``."""
        self._data[:] = [float(value)] * len(self._data)

    def random_normal(self, mean: float = 0.0, std: float = 1.0) -> None:
        """Fill with samples from a normal distribution."""
        self._data[:] = [_rng.gauss(mean, std) for _ in self._data]

    def random_uniform(self, low: float = 0.0, high: float = 1.0) -> None:
        """Fill with samples from a uniform distribution on [low, high)."""
        span = high - low
        self._data[:] = [low + span * _rng.random() for _ in self._data]

    def to_string(self) -> str:
        """Short description showing the shape and at most ten values."""
        dims = ", ".join(str(d) for d in self._shape)
        shown = ", ".join(f"{v:g}" for v in self._data[:_MAX_SHOWN])
        more = "..." if len(self._data) > _MAX_SHOWN else ""
        return f"Tensor(shape=[{dims}], data=[{shown}{more}])"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return self.to_string()

    # -------------------------------------------------------------- factories

    @classmethod
    def zeros(cls, shape: Iterable[int], requires_grad: bool = False) -> "Tensor":
        """Tensor of zeros."""
        result = cls(None, shape, requires_grad)
        result.fill(0.0)
        return result

    @classmethod
    def ones(cls, shape: Iterable[int], requires_grad: bool = False) -> "Tensor":
        """Tensor of ones."""
        result = cls(None, shape, requires_grad)
        result.fill(1.0)
        return result

    @classmethod
    def eye(cls, n: int, requires_grad: bool = False) -> "Tensor":
        """The n-by-n identity matrix."""
        result = cls(None, (n, n), requires_grad)
        for i in range(n):
            result._data[i * n + i] = 1.0
        return result

    @classmethod
    def randn(cls, shape: Iterable[int], requires_grad: bool = False) -> "Tensor":
        """Tensor of standard normal samples."""
        result = cls(None, shape, requires_grad)
        result.random_normal(0.0, 1.0)
        return result

    @classmethod
    def rand(cls, shape: Iterable[int], requires_grad: bool = False) -> "Tensor":
        """Tensor of uniform samples on [0, 1)."""
        result = cls(None, shape, requires_grad)
        result.random_uniform(0.0, 1.0)
        return result