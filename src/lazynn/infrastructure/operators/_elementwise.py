"""
Elementwise operator building functions.

Every function here returns a lazy `Operator`; nothing is computed until the
result (or something depending on it) is forced with `evaluate`.

Unary
-----
`negative`, `sigmoid`, `tanh`, `exp`, `absolute`.

Gradient helpers
----------------
- `sigmoid_grad(g, y)` computes ``g * y * (1 - y)`` from the sigmoid *output*
  ``y``, using ``sigmoid'(x) = y * (1 - y)``. Layers therefore buffer the
  output of a sigmoid, not its input.
- `tanh_grad(g, y)` computes ``g * (1 - y**2)`` from the tanh output.

Both helpers require operands of exactly equal shape.

Binary
------
`add`, `subtract`, `multiply`, `divide` promote tensor operands to their
common shape. A Python scalar on either side selects a scalar operator that
carries the scalar as an auxiliary parameter instead of materializing it.
"""

from __future__ import annotations

from functools import partial
from numbers import Number
from typing import Union

import numpy as np

from ...domain._errors import ShapeMismatchError
from ...domain._shape import Shape
from ...domain._tensor import IExpression
from ._broadcast import duplicate
from ._eval_units import ElementwiseEvalUnit
from ._operator import Operator, register_operator

Operand = Union[IExpression, int, float]

NEGATIVE = "negative"
SIGMOID = "sigmoid"
SIGMOID_GRAD = "sigmoid_grad"
TANH = "tanh"
TANH_GRAD = "tanh_grad"
EXP = "exp"
ABSOLUTE = "absolute"
ADD = "add"
SUBTRACT = "subtract"
MULTIPLY = "multiply"
DIVIDE = "divide"
ADD_SCALAR = "add_scalar"
MUL_SCALAR = "mul_scalar"
RSUB_SCALAR = "rsub_scalar"
DIV_SCALAR = "div_scalar"
RDIV_SCALAR = "rdiv_scalar"


def _sigmoid(x):
    return 1 / (1 + np.exp(-x))


def _sigmoid_grad(g, y):
    return g * y * (1 - y)


def _tanh_grad(g, y):
    return g * (1 - y * y)


_KERNELS = {
    NEGATIVE: np.negative,
    SIGMOID: _sigmoid,
    SIGMOID_GRAD: _sigmoid_grad,
    TANH: np.tanh,
    TANH_GRAD: _tanh_grad,
    EXP: np.exp,
    ABSOLUTE: np.abs,
    ADD: np.add,
    SUBTRACT: np.subtract,
    MULTIPLY: np.multiply,
    DIVIDE: np.divide,
    ADD_SCALAR: lambda x, scalar: x + scalar,
    MUL_SCALAR: lambda x, scalar: x * scalar,
    RSUB_SCALAR: lambda x, scalar: scalar - x,
    DIV_SCALAR: lambda x, scalar: x / np.float32(scalar),
    RDIV_SCALAR: lambda x, scalar: scalar / x,
}

for _tag, _kernel in _KERNELS.items():
    register_operator(_tag, partial(ElementwiseEvalUnit, kernel=_kernel))


def _check_expression(x) -> IExpression:
    if not isinstance(x, IExpression):
        raise TypeError(f"Expected a tensor or expression, got {type(x).__name__}")
    return x


def _is_scalar(x) -> bool:
    return isinstance(x, Number) and not isinstance(x, bool)


def _unary(tag: str, x: IExpression) -> Operator:
    x = _check_expression(x)
    return Operator(tag, (x,), x.shape)


def _scalar(tag: str, x: IExpression, scalar: float) -> Operator:
    x = _check_expression(x)
    return Operator(tag, (x,), x.shape, {"scalar": float(scalar)})


def _binary(tag: str, a: IExpression, b: IExpression) -> Operator:
    a = _check_expression(a)
    b = _check_expression(b)
    shape = Shape.promote(a.shape, b.shape)
    return Operator(tag, (duplicate(a, shape), duplicate(b, shape)), shape)


def _strict_binary(tag: str, a: IExpression, b: IExpression, name: str) -> Operator:
    a = _check_expression(a)
    b = _check_expression(b)
    if a.shape != b.shape:
        raise ShapeMismatchError(
            f"{name} error: operands' shape mismatch", expected=a.shape, actual=b.shape
        )
    return Operator(tag, (a, b), a.shape)


def negative(x: IExpression) -> Operator:
    """Lazily compute ``-x``."""
    return _unary(NEGATIVE, x)


def sigmoid(x: IExpression) -> Operator:
    """Lazily compute ``1 / (1 + exp(-x))`` elementwise."""
    return _unary(SIGMOID, x)


def tanh(x: IExpression) -> Operator:
    """Lazily compute ``tanh(x)`` elementwise."""
    return _unary(TANH, x)


def exp(x: IExpression) -> Operator:
    return _unary(EXP, x)


def absolute(x: IExpression) -> Operator:
    return _unary(ABSOLUTE, x)


def sigmoid_grad(grad: IExpression, output: IExpression) -> Operator:
    """
    Gradient of sigmoid with respect to its input, from its output.

    Parameters
    ----------
    grad : IExpression
        Gradient with respect to the sigmoid output.
    output : IExpression
        The sigmoid output ``y`` (not the input).

    Returns
    -------
    Operator
        ``grad * y * (1 - y)``.

    Raises
    ------
    ShapeMismatchError
        If the operand shapes differ.
    """
    return _strict_binary(SIGMOID_GRAD, grad, output, "SigmoidGrad")


def tanh_grad(grad: IExpression, output: IExpression) -> Operator:
    """
    Gradient of tanh with respect to its input, from its output ``y``:
    ``grad * (1 - y**2)``.
    """
    return _strict_binary(TANH_GRAD, grad, output, "TanhGrad")


def add(a: Operand, b: Operand) -> Operator:
    """Lazily compute ``a + b`` with promotion."""
    if _is_scalar(b):
        return _scalar(ADD_SCALAR, a, b)
    if _is_scalar(a):
        return _scalar(ADD_SCALAR, b, a)
    return _binary(ADD, a, b)


def subtract(a: Operand, b: Operand) -> Operator:
    """Lazily compute ``a - b`` with promotion."""
    if _is_scalar(b):
        return _scalar(ADD_SCALAR, a, -b)
    if _is_scalar(a):
        return _scalar(RSUB_SCALAR, b, a)
    return _binary(SUBTRACT, a, b)


def multiply(a: Operand, b: Operand) -> Operator:
    """Lazily compute ``a * b`` with promotion."""
    if _is_scalar(b):
        return _scalar(MUL_SCALAR, a, b)
    if _is_scalar(a):
        return _scalar(MUL_SCALAR, b, a)
    return _binary(MULTIPLY, a, b)


def divide(a: Operand, b: Operand) -> Operator:
    """Lazily compute ``a / b`` with promotion."""
    if _is_scalar(b):
        return _scalar(DIV_SCALAR, a, b)
    if _is_scalar(a):
        return _scalar(RDIV_SCALAR, b, a)
    return _binary(DIVIDE, a, b)
