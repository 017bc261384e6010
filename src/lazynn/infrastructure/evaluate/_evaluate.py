"""
Force operations.

`evaluate` and `evaluate_all` are the only places where computation actually
happens. Each call:

1. registers the requested expressions (and transitively their operands)
   with the evaluation plan of their device kind,
2. executes the registered units in dependency order,
3. returns the materialized tensors.

Expression nodes memoize their handles, so forcing the same expression again
returns the cached value without running anything. If anything fails, the
affected plan is cleared and the error propagates unchanged; there is no
partial retry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from ...domain._tensor import IExpression
from ._eval_plan import EvalPlan

if TYPE_CHECKING:
    from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


def evaluate(expr: IExpression) -> Tensor:
    """
    Materialize a single expression.

    Parameters
    ----------
    expr : IExpression
        A tensor or a lazy expression.

    Returns
    -------
    Tensor
        The immutable materialized value.
    """
    return evaluate_all(expr)[0]


def evaluate_all(*exprs: IExpression) -> List[Tensor]:
    """
    Materialize several expressions in one pass.

    All expressions are registered before any unit runs, so sub-expressions
    shared between them are computed once.

    Parameters
    ----------
    *exprs : IExpression
        Tensors or lazy expressions, possibly on different device kinds.

    Returns
    -------
    list[Tensor]
        Materialized values, in argument order.
    """
    plans = {}
    try:
        handles = []
        for expr in exprs:
            plan = EvalPlan.for_device(expr.device)
            plans[plan.device_type] = plan
            handles.append((plan, expr.eval_register()))

        for plan, handle in handles:
            plan.evaluate(handle.identity)
    except Exception:
        for plan in plans.values():
            plan.clear()
        raise

    logger.debug("Forced %d expression(s)", len(exprs))
    return [handle.data() for _, handle in handles]
