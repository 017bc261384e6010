"""
Lazy evaluation engine: handles, plans and the force functions.
"""

from ._eval_handle import EvalHandle, HandleState
from ._eval_plan import EvalPlan
from ._evaluate import evaluate, evaluate_all

__all__ = [
    EvalHandle.__name__,
    HandleState.__name__,
    EvalPlan.__name__,
    evaluate.__name__,
    evaluate_all.__name__,
]
