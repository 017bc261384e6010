"""
LazyNN: composable numeric layers over a lazy, deduplicating evaluation engine.

Quick start
-----------
>>> import numpy as np
>>> from lazynn import LayerIO, SigmoidLayer, Tensor, evaluate
>>> layer = SigmoidLayer(feedback_output=True)
>>> x = Tensor.from_numpy(np.array([[0.0, 1.0]]))
>>> y = layer.feed_forward(LayerIO.of(input=x))["output"]
>>> float(evaluate(y)[0, 0])
0.5
"""

from .domain import (
    ContractViolationError,
    DeviceMismatchError,
    DeviceNotSupportedError,
    EvaluationCycleError,
    LayerPolicy,
    LazyNNError,
    Shape,
    ShapeMismatchError,
    UndefinedValueError,
)
from .domain.device import Device, DeviceType
from .infrastructure._parameter import Parameter
from .infrastructure.evaluate import EvalHandle, EvalPlan, HandleState, evaluate, evaluate_all
from .infrastructure.operators import (
    absolute,
    add,
    collapse,
    divide,
    duplicate,
    exp,
    interpolate,
    make_operator,
    multiply,
    negative,
    register_operator,
    sigmoid,
    sigmoid_grad,
    subtract,
    tanh,
    tanh_grad,
)
from .infrastructure.layers import (
    AddLayer,
    BiasLayer,
    ComposeLayer,
    ComposeTopology,
    ElementMulLayer,
    InterpolateLayer,
    Layer,
    LayerIO,
    NegativeLayer,
    SigmoidLayer,
    ShapeChecker,
    TanhLayer,
    layer_from_config,
    layer_to_config,
    register_layer,
)
from .infrastructure.tensor import Tensor

__version__ = "0.1.0"
