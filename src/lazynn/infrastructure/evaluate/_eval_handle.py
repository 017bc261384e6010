"""
Evaluation handles.

An `EvalHandle` is the ownership/state wrapper around one output slot of the
expression graph. It moves through three states:

    UNALLOCATED --allocate(shape)--> ALLOCATED --set_eval()--> EVALUATED

- Only the producing evaluation unit writes to a handle, through
  `mutable_data()`, between `allocate` and `set_eval`.
- `set_eval` freezes the storage and wraps it into an immutable `Tensor`
  shared by every reader; a second `set_eval` is a contract violation.
- Reading (`data()`) before the handle is evaluated raises
  `UndefinedValueError`.

Handles carry the integer identity of the node that owns them; the evaluation
plan uses that identity as its deduplication key.
"""

from __future__ import annotations

from enum import Enum
from itertools import count
from typing import TYPE_CHECKING, Optional

import numpy as np

from ...domain._errors import ContractViolationError, UndefinedValueError
from ...domain._shape import Shape
from ...domain.device._device import Device

if TYPE_CHECKING:
    from ..tensor._tensor import Tensor

DTYPE = np.float32

_identities = count(1)


def next_identity() -> int:
    """Allocate a fresh node identity (process-wide, never reused)."""
    return next(_identities)


class HandleState(Enum):
    """Lifecycle states of an `EvalHandle`."""

    UNALLOCATED = "unallocated"
    ALLOCATED = "allocated"
    EVALUATED = "evaluated"


class EvalHandle:
    """
    Output slot of an expression node.

    Parameters
    ----------
    identity : int
        Identity of the node producing this slot.
    device : Device
        Device the storage lives on.
    """

    __slots__ = ("_identity", "_device", "_state", "_buffer", "_value")

    def __init__(self, identity: int, device: Device) -> None:
        self._identity = identity
        self._device = device
        self._state = HandleState.UNALLOCATED
        self._buffer: Optional[np.ndarray] = None
        self._value: Optional["Tensor"] = None

    @classmethod
    def of_tensor(cls, tensor: "Tensor") -> "EvalHandle":
        """Build an already evaluated handle around a materialized tensor."""
        handle = cls(tensor.identity, tensor.device)
        handle._value = tensor
        handle._state = HandleState.EVALUATED
        return handle

    @property
    def identity(self) -> int:
        return self._identity

    @property
    def device(self) -> Device:
        return self._device

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_evaluated(self) -> bool:
        return self._state is HandleState.EVALUATED

    def allocate(self, shape) -> None:
        """
        Create zero-initialized output storage.

        Raises
        ------
        ContractViolationError
            If storage already exists.
        """
        if self._state is not HandleState.UNALLOCATED:
            raise ContractViolationError(
                f"Handle #{self._identity} is already {self._state.value}; cannot allocate."
            )
        self._buffer = np.zeros(Shape(shape), dtype=DTYPE)
        self._state = HandleState.ALLOCATED

    def mutable_data(self) -> np.ndarray:
        """
        Return the writable output storage (producer only).

        Raises
        ------
        UndefinedValueError
            If `allocate` has not been called.
        ContractViolationError
            If the handle is already evaluated.
        """
        if self._state is HandleState.UNALLOCATED:
            raise UndefinedValueError(f"Handle #{self._identity} has no storage yet.")
        if self._state is HandleState.EVALUATED:
            raise ContractViolationError(
                f"Handle #{self._identity} is evaluated; its storage is immutable."
            )
        return self._buffer

    def set_eval(self) -> None:
        """
        Mark the handle evaluated and freeze its storage.

        Raises
        ------
        UndefinedValueError
            If nothing was allocated.
        ContractViolationError
            If the handle was already evaluated (a second writer).
        """
        from ..tensor._tensor import Tensor

        if self._state is HandleState.EVALUATED:
            raise ContractViolationError(
                f"Handle #{self._identity} evaluated twice; exactly one writer is allowed."
            )
        if self._state is HandleState.UNALLOCATED:
            raise UndefinedValueError(
                f"Handle #{self._identity} was never allocated before set_eval()."
            )
        self._value = Tensor._wrap(self._buffer, self._device)
        self._buffer = None
        self._state = HandleState.EVALUATED

    def data(self) -> "Tensor":
        """
        Return the materialized value.

        Raises
        ------
        UndefinedValueError
            If the handle is not evaluated.
        """
        if self._state is not HandleState.EVALUATED:
            raise UndefinedValueError(
                f"Handle #{self._identity} read while {self._state.value}."
            )
        return self._value

    def __repr__(self) -> str:
        return f"EvalHandle(#{self._identity}, {self._device}, {self._state.value})"
