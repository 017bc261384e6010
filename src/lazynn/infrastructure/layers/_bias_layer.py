"""
Bias layer with an updatable parameter.

`BiasLayer` adds a learnable bias (broadcast against the input). When created
with ``feedback_output=True`` and ``update=True`` it also collects the
collapsed output gradient into its `Parameter` on every `feed_backward`.
Applying the collected gradient is the job of an external optimizer.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np
from typing_extensions import Self

from ...domain._shape import Shape
from .._parameter import Parameter
from ..operators import _elementwise as ew
from ..operators._broadcast import collapse
from ..tensor._tensor import Tensor
from ._layer import Layer, Values
from ._layer_config import register_layer
from ._layer_io import LAYER_INPUT, LAYER_OUTPUT


@register_layer()
class BiasLayer(Layer):
    """
    Learnable additive bias: ``y = x + b``.

    Parameters
    ----------
    shape : Iterable[int]
        Shape of the bias; it must broadcast against the inputs.
    name : str, optional
        Diagnostic name.
    feedback_output : bool, optional
        Produce the input gradient ``collapse(g, shape(x))``.
    update : bool, optional
        Collect ``collapse(g, shape(b))`` into `bias` on every backward call
        (backward only runs with ``feedback_output``).
    init : array-like, optional
        Initial bias value. Defaults to zeros.
    device : Device | str | None, optional
        Device of the bias tensor.
    """

    supports_update = True

    def __init__(
        self,
        shape,
        name: Optional[str] = None,
        *,
        feedback_output: bool = False,
        update: bool = False,
        init: Any = None,
        device=None,
    ) -> None:
        super().__init__(name, feedback_output=feedback_output, update=update)
        shape = Shape(shape)
        if init is None:
            value = Tensor(shape, device)
        else:
            value = Tensor.from_numpy(np.broadcast_to(np.asarray(init), shape), device)
        self.bias = Parameter(f"{self.name}.bias", value)
        self.register_parameter("bias", self.bias)

    def _forward(self, inputs: Values) -> Values:
        x = inputs[LAYER_INPUT]
        self._save("input_shape", x.shape)
        return {LAYER_OUTPUT: ew.add(x, self.bias.value)}

    def _backward(self, grads: Values) -> Values:
        input_shape = self._restore("input_shape")
        g = grads[LAYER_OUTPUT]
        if self.is_update:
            self.bias.accumulate_grad(collapse(g, self.bias.shape))
        return {LAYER_INPUT: collapse(g, input_shape)}

    def get_config(self) -> Dict[str, Any]:
        cfg = super().get_config()
        cfg["shape"] = list(self.bias.shape)
        cfg["device"] = str(self.bias.value.device)
        return cfg

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        cfg = dict(cfg)
        shape = cfg.pop("shape")
        return cls(shape, **cfg)
