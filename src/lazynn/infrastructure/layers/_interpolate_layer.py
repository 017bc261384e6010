"""
Interpolation layer.

Forward
-------
Given ``weight1`` (v1), ``weight2`` (v2) and ``lambda`` (λ), all broadcastable
to a common shape S:

    y = λ * v1 + (1 - λ) * v2            (over S)

Backward
--------
With output gradient ``g`` over S, each input gradient is collapsed back to
the shape its operand had before promotion:

    d(v1) = collapse(g * λ,         shape(v1))
    d(v2) = collapse(g * (1 - λ),   shape(v2))
    d(λ)  = collapse(g * (v1 - v2), shape(λ))

All three operands are buffered by `feed_forward`.
"""

from ..operators import _elementwise as ew
from ..operators._broadcast import collapse, interpolate
from ._layer import Layer, Values
from ._layer_config import register_layer
from ._layer_io import LAYER_OUTPUT


@register_layer()
class InterpolateLayer(Layer):
    """
    Elementwise interpolation between two inputs weighted by a third.

    Input keys are ``weight1``, ``weight2`` and ``lambda``; the output key is
    ``output``.
    """

    WEIGHT1 = "weight1"
    WEIGHT2 = "weight2"
    LAMBDA = "lambda"

    input_keys = (WEIGHT1, WEIGHT2, LAMBDA)

    def _forward(self, inputs: Values) -> Values:
        v1 = inputs[self.WEIGHT1]
        v2 = inputs[self.WEIGHT2]
        lam = inputs[self.LAMBDA]
        y = interpolate(v1, v2, lam)

        self._save(self.WEIGHT1, v1)
        self._save(self.WEIGHT2, v2)
        self._save(self.LAMBDA, lam)
        return {LAYER_OUTPUT: y}

    def _backward(self, grads: Values) -> Values:
        lam = self._restore(self.LAMBDA)
        v2 = self._restore(self.WEIGHT2)
        v1 = self._restore(self.WEIGHT1)
        g = grads[LAYER_OUTPUT]

        return {
            self.WEIGHT1: collapse(ew.multiply(g, lam), v1.shape),
            self.WEIGHT2: collapse(ew.multiply(g, ew.subtract(1.0, lam)), v2.shape),
            self.LAMBDA: collapse(ew.multiply(g, ew.subtract(v1, v2)), lam.shape),
        }
