"""
Evaluation plan (scheduler / registry).

The evaluation plan collects evaluation units keyed by the identity of their
output, deduplicates repeated registrations, and executes units on demand in
dependency order.

Scoping
-------
There is one plan per device *kind* (`EvalPlan.for_device`), shared by the
whole process. Entries only live for the duration of a force call:

- registering a unit adds an entry,
- executing a unit removes its entry immediately,
- a force call that fails clears every pending entry before re-raising.

So the table is empty between force calls and cannot grow without bound.
Results themselves are not kept here; they live on the handles memoized by
the expression nodes.

Execution
---------
`evaluate(identity)` resolves dependencies depth-first with an explicit stack
and runs each unit exactly once, after every dependency still registered in
the table has run. Dependencies not in the table are expected to be evaluated
already (leaves or results of earlier force calls); reading one that is not
raises `UndefinedValueError` from the handle. Graphs are acyclic by
construction, but a cycle observed during resolution is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from ...domain._eval_unit import BaseEvalUnit
from ...domain._errors import (
    DeviceMismatchError,
    EvaluationCycleError,
    UndefinedValueError,
)
from ...domain.device._device import Device, DeviceType
from ._eval_handle import EvalHandle

logger = logging.getLogger(__name__)


@dataclass
class _PlanEntry:
    unit: BaseEvalUnit
    output: EvalHandle
    dependencies: Tuple[int, ...]


class EvalPlan:
    """
    Per-device-kind registry of pending evaluation units.

    Parameters
    ----------
    device_type : DeviceType
        The device kind whose units this plan schedules.
    """

    _plans: Dict[DeviceType, "EvalPlan"] = {}

    def __init__(self, device_type: DeviceType) -> None:
        self._device_type = device_type
        self._entries: Dict[int, _PlanEntry] = {}

    @classmethod
    def for_device(cls, device: Device) -> "EvalPlan":
        """Return the process-wide plan for the kind of `device`."""
        plan = cls._plans.get(device.type)
        if plan is None:
            plan = cls._plans[device.type] = cls(device.type)
        return plan

    @property
    def device_type(self) -> DeviceType:
        return self._device_type

    def pending_count(self) -> int:
        """Number of registered units that have not run yet."""
        return len(self._entries)

    def is_registered(self, identity: int) -> bool:
        return identity in self._entries

    def register(
        self,
        unit: BaseEvalUnit,
        output: EvalHandle,
        dependencies: Iterable[int],
    ) -> EvalHandle:
        """
        Register `unit` as the producer of `output`.

        Parameters
        ----------
        unit : BaseEvalUnit
            Unit that will write `output`.
        output : EvalHandle
            Output handle; its identity is the deduplication key.
        dependencies : Iterable[int]
            Identities of the handles `unit` reads.

        Returns
        -------
        EvalHandle
            `output`, or the handle already registered under the same
            identity (in which case `unit` is discarded).

        Raises
        ------
        DeviceMismatchError
            If `unit` runs on a different device kind than this plan.
        """
        if unit.device.type is not self._device_type:
            raise DeviceMismatchError(str(unit.device), self._device_type.value)

        existing = self._entries.get(output.identity)
        if existing is not None:
            logger.debug("Plan %s: #%d already registered", self._device_type.value, output.identity)
            return existing.output

        deps = tuple(dependencies)
        self._entries[output.identity] = _PlanEntry(unit, output, deps)
        logger.debug(
            "Plan %s: registered #%d (%s) depending on %s",
            self._device_type.value,
            output.identity,
            type(unit).__name__,
            deps,
        )
        return output

    def evaluate(self, identity: int) -> None:
        """
        Execute the unit producing `identity` and everything it depends on.

        A no-op if `identity` is not registered (already executed, or a leaf).

        Raises
        ------
        EvaluationCycleError
            If a dependency cycle is observed.
        UndefinedValueError
            If a unit returns without evaluating its output.
        """
        stack: List[Tuple[int, bool]] = [(identity, False)]
        visiting = set()

        while stack:
            ident, expanded = stack.pop()
            entry = self._entries.get(ident)
            if entry is None:
                continue

            if expanded:
                self._run(ident, entry)
                visiting.discard(ident)
                continue

            if ident in visiting:
                raise EvaluationCycleError(ident)
            visiting.add(ident)
            stack.append((ident, True))
            for dep in reversed(entry.dependencies):
                if dep in visiting:
                    raise EvaluationCycleError(dep)
                if dep in self._entries:
                    stack.append((dep, False))

    def clear(self) -> None:
        """Drop every pending entry."""
        if self._entries:
            logger.debug(
                "Plan %s: clearing %d pending unit(s)",
                self._device_type.value,
                len(self._entries),
            )
        self._entries.clear()

    def _run(self, identity: int, entry: _PlanEntry) -> None:
        logger.debug("Plan %s: executing #%d (%s)", self._device_type.value, identity, type(entry.unit).__name__)
        entry.unit.eval()
        if not entry.output.is_evaluated:
            raise UndefinedValueError(
                f"{type(entry.unit).__name__} returned without evaluating handle #{identity}."
            )
        del self._entries[identity]
