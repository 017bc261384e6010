"""
Broadcast operators: duplicate (promote), collapse, interpolate.

- `duplicate(x, shape)` repeats `x` along new or size-1 axes up to `shape`.
- `collapse(g, shape)` is its inverse for gradients: it sums `g` over the
  axes a value of `shape` was promoted along.
- `interpolate(v1, v2, lam)` promotes its three operands to their common
  shape S and computes ``lam * v1 + (1 - lam) * v2`` over S.

Shape incompatibilities are reported with `ShapeMismatchError` when the node
is built, before anything is computed.
"""

from __future__ import annotations

from functools import partial

from ...domain._errors import ShapeMismatchError
from ...domain._shape import Shape
from ...domain._tensor import IExpression
from ._eval_units import CollapseEvalUnit, DuplicateEvalUnit, ElementwiseEvalUnit
from ._operator import Operator, register_operator

DUPLICATE = "duplicate"
COLLAPSE = "collapse"
INTERPOLATE = "interpolate"


def _interpolate_kernel(v1, v2, lam):
    return lam * v1 + (1 - lam) * v2


register_operator(DUPLICATE, DuplicateEvalUnit)
register_operator(COLLAPSE, CollapseEvalUnit)
register_operator(INTERPOLATE, partial(ElementwiseEvalUnit, kernel=_interpolate_kernel))


def duplicate(x: IExpression, shape) -> IExpression:
    """
    Promote `x` to `shape`.

    Returns `x` itself when the shapes already match.

    Raises
    ------
    ShapeMismatchError
        If `x.shape` cannot be broadcast to `shape`.
    """
    target = Shape(shape)
    if x.shape == target:
        return x
    if not x.shape.can_promote_to(target):
        raise ShapeMismatchError(
            "Duplicate error: operand cannot be promoted", expected=target, actual=x.shape
        )
    return Operator(DUPLICATE, (x,), target, {"target_shape": target})


def collapse(g: IExpression, shape) -> IExpression:
    """
    Sum `g` over broadcast axes down to `shape`.

    Returns `g` itself when the shapes already match.

    Raises
    ------
    ShapeMismatchError
        If `shape` could not have been promoted to `g.shape`.
    """
    target = Shape(shape)
    if g.shape == target:
        return g
    g.shape.collapse_axes(target)
    return Operator(COLLAPSE, (g,), target, {"target_shape": target})


def interpolate(v1: IExpression, v2: IExpression, lam: IExpression) -> IExpression:
    """
    Lazily compute ``lam * v1 + (1 - lam) * v2`` over the promoted shape.
    """
    shape = Shape.promote(v1.shape, v2.shape, lam.shape)
    return Operator(
        INTERPOLATE,
        (duplicate(v1, shape), duplicate(v2, shape), duplicate(lam, shape)),
        shape,
    )
