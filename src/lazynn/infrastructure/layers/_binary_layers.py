"""
Two-input elementwise layers: `AddLayer` and `ElementMulLayer`.

Both read ``input1`` and ``input2`` and write ``output``. Inputs of different
but broadcast-compatible shapes are promoted to their common shape; gradients
are collapsed back to each input's own shape.
"""

from ..operators import _elementwise as ew
from ..operators._broadcast import collapse
from ._layer import Layer, Values
from ._layer_config import register_layer
from ._layer_io import LAYER_OUTPUT

INPUT1 = "input1"
INPUT2 = "input2"


@register_layer()
class AddLayer(Layer):
    """
    Elementwise sum ``y = x1 + x2``.

    Only the operand shapes are buffered; the gradient of each input is the
    output gradient collapsed to that input's shape.
    """

    input_keys = (INPUT1, INPUT2)

    def _forward(self, inputs: Values) -> Values:
        x1, x2 = inputs[INPUT1], inputs[INPUT2]
        self._save("shapes", (x1.shape, x2.shape))
        return {LAYER_OUTPUT: ew.add(x1, x2)}

    def _backward(self, grads: Values) -> Values:
        shape1, shape2 = self._restore("shapes")
        g = grads[LAYER_OUTPUT]
        return {INPUT1: collapse(g, shape1), INPUT2: collapse(g, shape2)}


@register_layer()
class ElementMulLayer(Layer):
    """
    Elementwise product ``y = x1 * x2``.

    Both operands are buffered:

        d(x1) = collapse(g * x2, shape(x1))
        d(x2) = collapse(g * x1, shape(x2))
    """

    input_keys = (INPUT1, INPUT2)

    def _forward(self, inputs: Values) -> Values:
        x1, x2 = inputs[INPUT1], inputs[INPUT2]
        self._save(INPUT1, x1)
        self._save(INPUT2, x2)
        return {LAYER_OUTPUT: ew.multiply(x1, x2)}

    def _backward(self, grads: Values) -> Values:
        x2 = self._restore(INPUT2)
        x1 = self._restore(INPUT1)
        g = grads[LAYER_OUTPUT]
        return {
            INPUT1: collapse(ew.multiply(g, x2), x1.shape),
            INPUT2: collapse(ew.multiply(g, x1), x2.shape),
        }
