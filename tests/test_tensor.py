import math

import pytest

from kotgrad.tensor import Tensor


@pytest.fixture
def tensor_a():
    return Tensor([2.0, 3.0], (2,), True)


@pytest.fixture
def tensor_b():
    return Tensor([4.0, 5.0], (2,), True)


@pytest.fixture
def tensor_no_grad():
    return Tensor([2.0, 3.0], (2,), False)


@pytest.fixture
def scalar_a():
    return Tensor([3.0], (1,), True)


@pytest.fixture
def scalar_b():
    return Tensor([4.0], (1,), True)


def grads(tensor):
    assert tensor.requires_grad
    return list(tensor.grad)


# --- construction and access -------------------------------------------------


def test_shape_only_constructor_is_zero_filled():
    t = Tensor(None, (2, 3))
    assert t.shape == (2, 3)
    assert t.data == [0.0] * 6
    assert t.grad == []


def test_data_size_mismatch_raises():
    with pytest.raises(ValueError):
        Tensor([1.0, 2.0, 3.0], (2, 2))


def test_data_without_shape_is_one_dimensional():
    t = Tensor([1.0, 2.0, 3.0])
    assert t.shape == (3,)
    assert t.size == 3
    assert len(t) == 3


def test_flat_indexing_and_bounds():
    t = Tensor([1.0, 2.0, 3.0], (3,))
    t[1] = 7.0
    assert t[1] == 7.0
    with pytest.raises(IndexError):
        t[3]
    with pytest.raises(IndexError):
        t[-1] = 0.0


def test_at_and_set_at():
    t = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (2, 3))
    assert t.at((1, 2)) == 6.0
    t.set_at((0, 1), 9.0)
    assert t[1] == 9.0
    with pytest.raises(ValueError):
        t.at((1,))
    with pytest.raises(IndexError):
        t.at((2, 0))


def test_to_string():
    t = Tensor([1.0, 2.5, 3.0], (3,))
    assert t.to_string() == "Tensor(shape=[3], data=[1, 2.5, 3])"
    assert str(t) == t.to_string()


def test_to_string_truncates_after_ten_values():
    t = Tensor([float(i) for i in range(12)], (3, 4))
    assert t.to_string() == "Tensor(shape=[3, 4], data=[0, 1, 2, 3, 4, 5, 6, 7, 8, 9...])"


# --- gradient basics ---------------------------------------------------------


def test_basic_gradient_properties(tensor_a, tensor_b, tensor_no_grad):
    assert tensor_a.requires_grad
    assert tensor_b.requires_grad
    assert not tensor_no_grad.requires_grad
    assert len(tensor_a.grad) == tensor_a.size
    assert tensor_a.grad == [0.0, 0.0]
    assert tensor_b.grad == [0.0, 0.0]


def test_zero_grad(tensor_a):
    tensor_a.grad[0] = 1.0
    tensor_a.grad[1] = 2.0
    assert tensor_a.grad == [1.0, 2.0]
    tensor_a.zero_grad()
    assert tensor_a.grad == [0.0, 0.0]


def test_set_requires_grad():
    t = Tensor([1.0, 2.0], (2,), False)
    assert not t.requires_grad
    t.requires_grad = True
    assert t.requires_grad
    assert len(t.grad) == t.size
    t.requires_grad = False
    assert not t.requires_grad


# --- arithmetic gradients ----------------------------------------------------


def test_addition_gradients(tensor_a, tensor_b):
    c = tensor_a + tensor_b
    assert c.requires_grad
    assert c.data == [6.0, 8.0]
    c.grad[0] = 1.0
    c.grad[1] = 1.0
    c.backward()
    assert grads(tensor_a) == pytest.approx([1.0, 1.0])
    assert grads(tensor_b) == pytest.approx([1.0, 1.0])


def test_subtraction_gradients(tensor_a, tensor_b):
    c = tensor_a - tensor_b
    assert c.requires_grad
    c.grad[0] = 1.0
    c.grad[1] = 1.0
    c.backward()
    assert grads(tensor_a) == pytest.approx([1.0, 1.0])
    assert grads(tensor_b) == pytest.approx([-1.0, -1.0])


def test_multiplication_gradients(tensor_a, tensor_b):
    c = tensor_a * tensor_b
    assert c.requires_grad
    c.grad[0] = 1.0
    c.grad[1] = 1.0
    c.backward()
    assert grads(tensor_a) == pytest.approx([4.0, 5.0])
    assert grads(tensor_b) == pytest.approx([2.0, 3.0])


def test_division_gradients(tensor_a, tensor_b):
    c = tensor_a / tensor_b
    assert c.requires_grad
    c.grad[0] = 1.0
    c.grad[1] = 1.0
    c.backward()
    assert grads(tensor_a) == pytest.approx([1.0 / 4.0, 1.0 / 5.0])
    assert grads(tensor_b) == pytest.approx([-2.0 / 16.0, -3.0 / 25.0])


def test_scalar_addition_gradients(tensor_a):
    c = tensor_a + 5.0
    assert c.requires_grad
    assert c.data == [7.0, 8.0]
    c.grad[0] = 1.0
    c.grad[1] = 1.0
    c.backward()
    assert grads(tensor_a) == pytest.approx([1.0, 1.0])


def test_scalar_multiplication_gradients(tensor_a):
    c = tensor_a * 3.0
    assert c.requires_grad
    c.grad[0] = 1.0
    c.grad[1] = 1.0
    c.backward()
    assert grads(tensor_a) == pytest.approx([3.0, 3.0])


def test_chained_operations(tensor_a, tensor_b):
    total = tensor_a + tensor_b
    diff = tensor_a - tensor_b
    result = total * diff
    assert result.data == [-12.0, -16.0]
    assert result.requires_grad
    result.grad[0] = 1.0
    result.grad[1] = 1.0
    result.backward()
    assert grads(tensor_a) == pytest.approx([4.0, 6.0])
    assert grads(tensor_b) == pytest.approx([-8.0, -10.0])


def test_complex_chain(tensor_a, tensor_b):
    mul = tensor_a * tensor_b
    add = mul + tensor_a
    result = add / tensor_b
    assert result.data == pytest.approx([2.5, 3.6])
    assert result.requires_grad
    result.grad[0] = 1.0
    result.grad[1] = 1.0
    result.backward()
    assert grads(tensor_a) == pytest.approx([1.25, 1.2], abs=1e-4)
    assert grads(tensor_b) == pytest.approx([-0.125, -0.12], abs=1e-4)


def test_matmul_gradients():
    a = Tensor([1.0, 2.0, 3.0, 4.0], (2, 2), True)
    b = Tensor([2.0, 0.0, 1.0, 3.0], (2, 2), True)
    c = a.matmul(b)
    assert c.requires_grad
    c.grad[:] = [1.0, 0.0, 0.0, 1.0]
    c.backward()
    assert len(a.grad) == 4
    assert len(b.grad) == 4
    assert any(abs(g) > 1e-6 for g in a.grad)
    assert any(abs(g) > 1e-6 for g in b.grad)
    # With an identity output gradient: dA = B^T and dB = A^T.
    assert a.grad == pytest.approx([2.0, 1.0, 0.0, 3.0])
    assert b.grad == pytest.approx([1.0, 3.0, 2.0, 4.0])


def test_sum_gradients(tensor_a):
    s = tensor_a.sum()
    assert s.requires_grad
    assert s.size == 1
    assert s[0] == 5.0
    s.grad[0] = 1.0
    s.backward()
    assert grads(tensor_a) == pytest.approx([1.0, 1.0])


def test_mean_gradients(tensor_a):
    m = tensor_a.mean()
    assert m.requires_grad
    assert m.size == 1
    assert m[0] == pytest.approx(2.5)
    m.grad[0] = 1.0
    m.backward()
    expected = 1.0 / tensor_a.size
    assert grads(tensor_a) == pytest.approx([expected, expected])


def test_mixed_gradient_operations(tensor_a, tensor_no_grad):
    result = tensor_a + tensor_no_grad
    assert result.requires_grad
    result.grad[0] = 1.0
    result.grad[1] = 1.0
    result.backward()
    assert grads(tensor_a) == pytest.approx([1.0, 1.0])
    assert not tensor_no_grad.requires_grad
    assert tensor_no_grad.grad == []


def test_gradient_accumulation(tensor_a):
    result1 = tensor_a * 2.0
    result2 = tensor_a + 1.0
    result1.grad[:] = [1.0, 1.0]
    result2.grad[:] = [1.0, 1.0]
    result1.backward()
    result2.backward()
    assert grads(tensor_a) == pytest.approx([3.0, 3.0])


def test_single_element_gradients(scalar_a, scalar_b):
    result = scalar_a * scalar_b
    assert result.requires_grad
    assert result[0] == 12.0
    result.grad[0] = 1.0
    result.backward()
    assert grads(scalar_a) == pytest.approx([4.0])
    assert grads(scalar_b) == pytest.approx([3.0])


def test_scalar_backward_seeds_gradient():
    x = Tensor([3.0], (1,), True)
    y = x * x
    y.backward()
    assert y.grad == [1.0]
    assert x.grad == pytest.approx([6.0])


def test_zero_gradient_propagation(tensor_a):
    zeros = Tensor.zeros((2,), True)
    result = tensor_a * zeros
    assert result.requires_grad
    result.grad[:] = [1.0, 1.0]
    result.backward()
    assert grads(tensor_a) == pytest.approx([0.0, 0.0])


def test_large_gradient_chain(tensor_a):
    tensor_a.zero_grad()
    current = tensor_a * 1.0
    for _ in range(10):
        current = current * 1.1 + 0.1
    assert current.requires_grad
    current.grad[:] = [1.0, 1.0]
    current.backward()
    assert any(abs(g) > 1e-6 for g in tensor_a.grad)
    assert tensor_a.grad == pytest.approx([1.1 ** 10, 1.1 ** 10])


def test_backward_without_gradients_raises(tensor_no_grad):
    with pytest.raises(RuntimeError):
        tensor_no_grad.backward()


# --- forward behaviour -------------------------------------------------------


def test_shape_mismatch_raises():
    with pytest.raises(ValueError):
        Tensor([1.0, 2.0], (2,)) + Tensor([1.0, 2.0, 3.0], (3,))
    with pytest.raises(ValueError):
        Tensor([1.0, 2.0], (2,)) * Tensor([1.0, 2.0], (1, 2))


def test_division_by_zero_follows_ieee():
    t = Tensor([1.0, -1.0, 0.0], (3,)) / 0.0
    assert t[0] == math.inf
    assert t[1] == -math.inf
    assert math.isnan(t[2])


def test_scalar_on_the_left():
    t = Tensor([1.0, 2.0, 4.0], (3,), True)
    assert (10.0 - t).data == [9.0, 8.0, 6.0]
    assert (8.0 / t).data == [8.0, 4.0, 2.0]
    assert (2.0 * t).data == [2.0, 4.0, 8.0]
    assert (1.0 + t).data == [2.0, 3.0, 5.0]
    assert (10.0 - t).requires_grad


def test_matmul_values_and_errors():
    a = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (2, 3))
    b = Tensor([1.0, 0.0, 0.0, 1.0, 1.0, 1.0], (3, 2))
    c = a @ b
    assert c.shape == (2, 2)
    assert c.data == [4.0, 5.0, 10.0, 11.0]
    with pytest.raises(ValueError):
        a.matmul(a)
    with pytest.raises(ValueError):
        Tensor([1.0, 2.0], (2,)).matmul(b)


def test_reshape():
    t = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (2, 3), True)
    t.grad[0] = 0.5
    r = t.reshape((3, 2))
    assert r.shape == (3, 2)
    assert r.data == t.data
    assert r.grad[0] == 0.5
    with pytest.raises(ValueError):
        t.reshape((4, 2))


def test_transpose():
    t = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (2, 3))
    tt = t.transpose()
    assert tt.shape == (3, 2)
    assert tt.data == [1.0, 4.0, 2.0, 5.0, 3.0, 6.0]
    with pytest.raises(ValueError):
        Tensor([1.0, 2.0], (2,)).transpose()


def test_sum_and_mean_along_axis():
    t = Tensor([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], (2, 3))
    assert t.sum(0).shape == (3,)
    assert t.sum(0).data == [5.0, 7.0, 9.0]
    assert t.sum(1).data == [6.0, 15.0]
    assert t.mean(1).data == pytest.approx([2.0, 5.0])
    assert Tensor([1.0, 2.0], (2,)).sum(0).shape == (1,)
    with pytest.raises(ValueError):
        t.sum(2)
    with pytest.raises(ValueError):
        t.sum(-1)


def test_factories():
    assert Tensor.zeros((2, 2)).data == [0.0] * 4
    assert Tensor.ones((3,)).data == [1.0] * 3
    assert Tensor.eye(3).data == [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]
    assert Tensor.ones((2,), True).grad == [0.0, 0.0]


def test_random_factories():
    r = Tensor.rand((50,))
    assert r.shape == (50,)
    assert all(0.0 <= v < 1.0 for v in r.data)
    n = Tensor.randn((4, 5))
    assert n.shape == (4, 5)
    assert len(n.data) == 20


def test_fill_and_random_uniform():
    t = Tensor(None, (4,))
    t.fill(2.5)
    assert t.data == [2.5] * 4
    t.random_uniform(-1.0, 1.0)
    assert all(-1.0 <= v <= 1.0 for v in t.data)