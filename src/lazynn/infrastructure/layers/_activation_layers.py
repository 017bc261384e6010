"""
Single-input activation layers.

Each layer applies one elementwise building function in `feed_forward` and its
derivative in `feed_backward`:

- `SigmoidLayer` saves its *output* ``y`` and differentiates with
  ``sigmoid_grad(g, y) = g * y * (1 - y)``.
- `TanhLayer` saves its output as well and uses ``tanh_grad(g, y)``.
- `NegativeLayer` saves nothing; the gradient is ``-g``.

All three are stateless apart from their forward stacks, so their config holds
only ``name`` and ``feedback_output``.
"""

from ..operators import _elementwise as ew
from ._layer import Layer, Values
from ._layer_config import register_layer
from ._layer_io import LAYER_INPUT, LAYER_OUTPUT


@register_layer()
class SigmoidLayer(Layer):
    """
    Sigmoid activation layer.

    This layer applies the sigmoid function elementwise:

        sigmoid(x) = 1 / (1 + exp(-x))

    Notes
    -----
    The output is buffered, not the input: the derivative is computed from
    ``y`` as ``y * (1 - y)``.
    """

    def _forward(self, inputs: Values) -> Values:
        y = ew.sigmoid(inputs[LAYER_INPUT])
        self._save("output", y)
        return {LAYER_OUTPUT: y}

    def _backward(self, grads: Values) -> Values:
        y = self._restore("output")
        return {LAYER_INPUT: ew.sigmoid_grad(grads[LAYER_OUTPUT], y)}


@register_layer()
class TanhLayer(Layer):
    """
    Tanh activation layer.

    Buffers its output ``y`` and differentiates as ``g * (1 - y**2)``.
    """

    def _forward(self, inputs: Values) -> Values:
        y = ew.tanh(inputs[LAYER_INPUT])
        self._save("output", y)
        return {LAYER_OUTPUT: y}

    def _backward(self, grads: Values) -> Values:
        y = self._restore("output")
        return {LAYER_INPUT: ew.tanh_grad(grads[LAYER_OUTPUT], y)}


@register_layer()
class NegativeLayer(Layer):
    """Elementwise negation: ``y = -x``, ``dx = -g``."""

    def _forward(self, inputs: Values) -> Values:
        return {LAYER_OUTPUT: ew.negative(inputs[LAYER_INPUT])}

    def _backward(self, grads: Values) -> Values:
        return {LAYER_INPUT: ew.negative(grads[LAYER_OUTPUT])}
