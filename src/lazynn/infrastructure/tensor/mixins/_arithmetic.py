"""
Arithmetic operator mixin shared by tensors and lazy expressions.

`ExpressionArithmeticMixin` maps Python operators onto the lazy building
functions of `lazynn.infrastructure.operators`. Nothing is computed here:
every operator returns a new expression node.

Operands of different but broadcast-compatible shapes are promoted to their
common shape; Python scalars become scalar operators.
"""

from typing import Union

Number = Union[int, float]


class ExpressionArithmeticMixin:
    """
    Elementwise operator overloads building lazy expressions.
    """

    def __neg__(self):
        from ...operators import _elementwise as ew

        return ew.negative(self)

    def __abs__(self):
        from ...operators import _elementwise as ew

        return ew.absolute(self)

    def __add__(self, other):
        from ...operators import _elementwise as ew

        return ew.add(self, other)

    def __radd__(self, other: Number):
        from ...operators import _elementwise as ew

        return ew.add(other, self)

    def __sub__(self, other):
        from ...operators import _elementwise as ew

        return ew.subtract(self, other)

    def __rsub__(self, other: Number):
        from ...operators import _elementwise as ew

        return ew.subtract(other, self)

    def __mul__(self, other):
        from ...operators import _elementwise as ew

        return ew.multiply(self, other)

    def __rmul__(self, other: Number):
        from ...operators import _elementwise as ew

        return ew.multiply(other, self)

    def __truediv__(self, other):
        from ...operators import _elementwise as ew

        return ew.divide(self, other)

    def __rtruediv__(self, other: Number):
        from ...operators import _elementwise as ew

        return ew.divide(other, self)
