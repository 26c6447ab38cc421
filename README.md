# kotgrad

`kotgrad` is a compact, dependency-free library for experimenting with
tensors, reverse-mode automatic differentiation and small feed-forward
neural networks, written in plain Python.

It provides:

- `kotgrad.tensor.Tensor`: a dense, row-major tensor of floats with
  element-wise arithmetic, matrix multiplication, reductions and a
  gradient tape driven by `backward()`.
- `kotgrad.layers`: building blocks. These are `Linear`, `Activation`,
  `Dropout`, `InputLayer` and `OutputLayer`, along with the
  `ActivationType` enumeration, the `Module` base class and the helpers
  `activation_name` and `activation_derivative`.
- `kotgrad.ffn.FFN`: a multi-layer perceptron built from a list of layer
  sizes.
- `kotgrad.sequential.Sequential`: a chainable builder for stacking
  layers one by one.
- `kotgrad.training.TrainableNetwork`: the shared compile, fit, evaluate
  and predict workflow used by both network types.
- `kotgrad.progress.ProgressBar`: the one-line training progress display.

## Tensors and gradients

```python
from kotgrad.tensor import Tensor

a = Tensor([2.0, 3.0], [2], True)
b = Tensor([4.0, 5.0], [2], True)

c = a * b
c.grad[0] = 1.0
c.grad[1] = 1.0
c.backward()

print(a.grad)   # [4.0, 5.0]
print(b.grad)   # [2.0, 3.0]
```

`data` and `grad` are the tensor's flat, mutable lists. `shape`, `size` and
`requires_grad` describe the tensor. Setting `requires_grad` to true
allocates a zero gradient. Indexing with `t[i]` reads and writes the flat
buffer, and `at(indices)` and `set_at(indices, value)` address an element
by its multi-dimensional index.

Tensors combine with other tensors of the same shape, and with plain
numbers on either side:

```python
x = Tensor([1.0, 2.0, 3.0, 4.0], [2, 2], True)
y = Tensor.eye(2)

z = x @ y               # matrix product, same as x.matmul(y)
t = x.transpose()
s = x.sum()             # single-element tensor
rows = x.sum(0)         # reduce along an axis
m = x.mean()
print(z)                # Tensor(shape=[2, 2], data=[1, 2, 3, 4])
```

Gradients are recorded for:

- `+`, `-`, `*` and `/` between tensors, and with a number on the right;
- `matmul`;
- `sum()` and `mean()` over all elements.

Some operations produce a plain result with no gradient link:

- a number on the left of `-` or `/`;
- `sum(axis)`;
- `transpose()`;
- `reshape()`, which copies the values and the current gradient.

Division by zero follows IEEE rules and gives `inf`, `-inf` or `nan`.

When `backward()` is called on a single-element tensor whose gradient is
still zero, the gradient is first set to one. Gradients accumulate across
calls to `backward()`, and `zero_grad()` clears them. Calling `backward()`
on a tensor that does not require gradients raises `RuntimeError`.

These factory helpers are available:

- `Tensor.zeros`
- `Tensor.ones`
- `Tensor.eye`
- `Tensor.randn`
- `Tensor.rand`

A tensor can also be filled in place with `fill`, `random_normal` or
`random_uniform`.

## Feed-forward networks

```python
from kotgrad.ffn import FFN
from kotgrad.layers import ActivationType
from kotgrad.tensor import Tensor

model = FFN([5, 32, 16, 1], ActivationType.RELU, ActivationType.NONE, 0.1)
model.print_architecture()

sample = Tensor([0.1, -0.4, 0.3, 0.0, 1.2], [1, 5])
prediction = model.forward(sample)
print(model.count_parameters())
```

Every hidden layer uses the hidden activation and the last layer uses the
output activation. When its rate is above zero, dropout follows each
hidden layer only.

`architecture()` returns the description as a string, and
`print_architecture()` prints that description and also returns it. The
network also has these members:

- `num_layers`, `input_size` and `output_size`;
- `layer_sizes`;
- `layer(index)`;
- `parameters()`.

## Building a network layer by layer

```python
from kotgrad.sequential import Sequential

model = (
    Sequential()
    .input(4)
    .linear(4, 16)
    .relu()
    .dropout(0.2)
    .linear(16, 8)
    .relu()
    .linear(8, 3)
    .sigmoid()
    .build()
)
model.summary()
```

The builder also offers `tanh()`, `activation(kind)`,
`output(input_size, output_size, activation)` and `add(module)`.

A `Sequential` cannot be changed after `build()`, and `build()` can only
be called once. The network must be built before it is run, compiled or
used for prediction.

## Training

Both network types share the same workflow:

- `compile(optimizer, loss)` attaches an optimizer and a loss function,
  registers the network's parameters with the optimizer and prints a short
  report.
- `fit(inputs, targets, epochs, batch_size, validation_inputs,
  validation_targets, verbose)` trains on lists of tensors and returns the
  mean training loss of each epoch.
- `evaluate(inputs, targets)` returns the mean loss over a dataset.
- `predict(inputs)` returns one output tensor per input.

These cases raise errors:

- training or evaluating before compiling;
- input and target counts that do not match;
- empty datasets.

A batch size of zero or less trains on the whole dataset as one batch.
Training stops early, with a warning on standard error, when an epoch's
loss becomes NaN or infinite.

The package ships no optimizers and no loss functions, so you supply your
own. An optimizer needs:

- `clear_parameters()`;
- `add_parameter(tensor)`;
- `zero_grad()`;
- `step()`.

A loss needs:

- `forward(prediction, target)`, returning a tensor whose first element is
  the loss;
- `backward(prediction, target)`, returning the gradient with respect to
  the prediction.

If either one has a `name`, the compile report shows it.

```python
from kotgrad.ffn import FFN
from kotgrad.tensor import Tensor


class PlainSGD:
    name = "SGD"

    def __init__(self, lr):
        self.lr = lr
        self.params = []

    def clear_parameters(self):
        self.params.clear()

    def add_parameter(self, param):
        self.params.append(param)

    def zero_grad(self):
        for param in self.params:
            param.zero_grad()

    def step(self):
        for param in self.params:
            param.data[:] = [v - self.lr * g for v, g in zip(param.data, param.grad)]


class MeanSquaredError:
    name = "MSE"

    def forward(self, prediction, target):
        diffs = [p - t for p, t in zip(prediction.data, target.data)]
        return Tensor([sum(d * d for d in diffs) / len(diffs)], [1])

    def backward(self, prediction, target):
        n = prediction.size
        return Tensor(
            [2.0 * (p - t) / n for p, t in zip(prediction.data, target.data)],
            prediction.shape,
        )


inputs = [Tensor([x / 10.0], [1, 1]) for x in range(20)]
targets = [Tensor([3.0 * x.data[0] + 1.0], [1, 1]) for x in inputs]

model = FFN([1, 1])
model.compile(PlainSGD(0.05), MeanSquaredError())
history = model.fit(inputs, targets, epochs=50, batch_size=4, verbose=False)
print(history[-1], model.evaluate(inputs, targets))
```

The gradient pass inside `fit` treats each input tensor as one sample. It
computes gradients for `Linear` layers and passes them back through
`Activation` layers, and it passes them unchanged through `Dropout` and
`InputLayer`. The parameters of an `OutputLayer` receive no gradient from
`fit`.

When `verbose` is on, progress is shown on a single line through
`ProgressBar`. This example shows mini-batch mode with the default width
of 30:

```
Epoch 5 / 12 [===================...........] 65 / 100 loss: 1.488
```

In full-batch mode the bar tracks epochs instead of samples, and the
sample count is left out.

## What the package does not do

- It has no optimizer or loss-function classes. You provide them, as shown
  above.
- It has no data loaders, dataset readers or model save and load.
- It has no command-line program. It is used as a library only.