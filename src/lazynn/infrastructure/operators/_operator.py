"""
Lazy operator nodes and the operator table.

An `Operator` is an internal node of the expression DAG: an operator tag, a
tuple of operand expressions, the derived output shape, and optional
auxiliary parameters (e.g. a scalar or a target shape). Nodes are immutable
and built bottom-up from existing nodes, so the graph is acyclic by
construction.

Registration
------------
`Operator.eval_register` turns the node into an evaluation unit registered
with the plan of its device kind:

1. unregistered operands are registered first, in post-order (an explicit
   stack, no recursion),
2. the operator's `OpDef.unit_factory` builds the unit bound to the operand
   handles and a fresh output handle,
3. the plan stores the unit under the node's identity.

The resulting handle is memoized on the node, so registering a shared node
from several consumers, or forcing it several times, never recomputes it.

Operator table
--------------
Tags map to `OpDef` records. Built-in operators register themselves when
`lazynn.infrastructure.operators` is imported; callers may add their own
with `register_operator`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ...domain._eval_unit import BaseEvalUnit
from ...domain._errors import DeviceMismatchError
from ...domain._shape import Shape
from ...domain._tensor import IExpression
from ...domain.device._device import Device
from ..evaluate._eval_handle import EvalHandle, next_identity
from ..evaluate._eval_plan import EvalPlan
from ..tensor.mixins._arithmetic import ExpressionArithmeticMixin

UnitFactory = Callable[..., BaseEvalUnit]


@dataclass(frozen=True)
class OpDef:
    """
    Operator table record.

    Attributes
    ----------
    tag : str
        Operator name.
    unit_factory : Callable
        ``unit_factory(input_handles, output_handle, device, **aux)`` returning
        the evaluation unit that computes the operator.
    """

    tag: str
    unit_factory: UnitFactory


_OPERATORS: Dict[str, OpDef] = {}


def register_operator(tag: str, unit_factory: UnitFactory, *, replace: bool = False) -> OpDef:
    """
    Add an operator to the table.

    Raises
    ------
    ValueError
        If `tag` is already registered and `replace` is False.
    """
    if tag in _OPERATORS and not replace:
        raise ValueError(f"Operator '{tag}' is already registered.")
    op_def = OpDef(tag, unit_factory)
    _OPERATORS[tag] = op_def
    return op_def


def get_operator(tag: str) -> OpDef:
    try:
        return _OPERATORS[tag]
    except KeyError:
        raise ValueError(f"Unknown operator '{tag}'.") from None


def common_device(operands: Sequence[IExpression]) -> Device:
    """
    Return the device shared by all `operands`.

    Raises
    ------
    DeviceMismatchError
        If two operands live on different devices.
    """
    device = operands[0].device
    for op in operands[1:]:
        if op.device != device:
            raise DeviceMismatchError(str(device), str(op.device))
    return device


class Operator(ExpressionArithmeticMixin):
    """
    Pending operator application.

    Parameters
    ----------
    tag : str
        Registered operator tag.
    operands : Sequence[IExpression]
        Operand expressions (at least one).
    shape : Iterable[int]
        Output shape, derived by the building function.
    aux : Mapping[str, Any], optional
        Extra keyword arguments forwarded to the unit factory.
    """

    def __init__(
        self,
        tag: str,
        operands: Sequence[IExpression],
        shape,
        aux: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if not operands:
            raise ValueError(f"Operator '{tag}' needs at least one operand.")
        self._op_def = get_operator(tag)
        self._operands: Tuple[IExpression, ...] = tuple(operands)
        self._shape = Shape(shape)
        self._device = common_device(self._operands)
        self._aux: Dict[str, Any] = dict(aux or {})
        self._identity = next_identity()
        self._handle: Optional[EvalHandle] = None

    @property
    def tag(self) -> str:
        return self._op_def.tag

    @property
    def operands(self) -> Tuple[IExpression, ...]:
        return self._operands

    @property
    def aux(self) -> Mapping[str, Any]:
        return dict(self._aux)

    @property
    def identity(self) -> int:
        return self._identity

    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def device(self) -> Device:
        return self._device

    def _current_handle(self) -> Optional[EvalHandle]:
        handle = self._handle
        if handle is None:
            return None
        if handle.is_evaluated or EvalPlan.for_device(self._device).is_registered(self._identity):
            return handle
        # The plan was cleared after a failed force.
        return None

    def _register_unit(self) -> EvalHandle:
        # Operands are registered already, so these calls do not recurse.
        in_handles = [op.eval_register() for op in self._operands]
        out = EvalHandle(self._identity, self._device)
        unit = self._op_def.unit_factory(in_handles, out, self._device, **self._aux)
        plan = EvalPlan.for_device(self._device)
        self._handle = plan.register(unit, out, [h.identity for h in in_handles])
        return self._handle

    def eval_register(self) -> EvalHandle:
        """
        Register this node and every unregistered operator below it.

        The sub-graph is walked in post-order with an explicit stack, so
        chains of any depth register without recursion.
        """
        handle = self._current_handle()
        if handle is not None:
            return handle

        stack: List[Tuple[IExpression, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if not isinstance(node, Operator):
                node.eval_register()
                continue
            if node._current_handle() is not None:
                continue
            if expanded:
                node._register_unit()
                continue
            stack.append((node, True))
            for op in reversed(node._operands):
                stack.append((op, False))
        return self._handle

    def __repr__(self) -> str:
        return f"Operator({self.tag!r}, #{self._identity}, shape={tuple(self._shape)})"


def make_operator(tag: str, operands: Sequence[IExpression], shape, **aux: Any) -> Operator:
    """Build an `Operator` node for a registered tag."""
    return Operator(tag, operands, shape, aux)
