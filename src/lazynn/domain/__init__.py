"""
Domain contracts: value types, interfaces and errors.

Nothing in this package depends on `lazynn.infrastructure`.
"""

from ._errors import (
    ContractViolationError,
    DeviceMismatchError,
    DeviceNotSupportedError,
    EvaluationCycleError,
    LazyNNError,
    ShapeMismatchError,
    UndefinedValueError,
)
from ._eval_unit import BaseEvalUnit
from ._layer import ILayer
from ._parameter import IParameter
from ._policy import LayerPolicy
from ._shape import Shape
from ._tensor import IExpression, ITensor
