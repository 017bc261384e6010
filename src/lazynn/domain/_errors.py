"""
Contract and execution errors for LazyNN.

This module defines the exception taxonomy shared by the evaluation engine and
the layer system. Every error here models a *programming-contract* violation
(bad graph construction, mis-sequenced forward/backward calls, an internal
scheduling defect) rather than a transient runtime fault, so none of them is
ever retried: they surface synchronously to the caller of `feed_forward`,
`feed_backward`, or `evaluate`.

Hierarchy
---------
- `LazyNNError`
    - `ShapeMismatchError` (also a `ValueError`)
    - `ContractViolationError` (also a `RuntimeError`)
        - `EvaluationCycleError`
    - `UndefinedValueError` (also a `RuntimeError`)
    - `DeviceNotSupportedError` (also a `RuntimeError`)
    - `DeviceMismatchError` (also a `RuntimeError`)
"""

from typing import Optional, Sequence


class LazyNNError(Exception):
    """Base class for LazyNN-specific exceptions."""


class ShapeMismatchError(LazyNNError, ValueError):
    """
    Raised when operand shapes are incompatible.

    This covers two situations:

    - building an operator whose operands cannot be promoted to a common
      shape (detected before anything is computed), and
    - a backward-time shape that disagrees with the shape recorded by the
      paired forward call.

    Attributes
    ----------
    expected : Optional[tuple[int, ...]]
        The shape that was required, if known.
    actual : Optional[tuple[int, ...]]
        The shape that was supplied, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        expected: Optional[Sequence[int]] = None,
        actual: Optional[Sequence[int]] = None,
    ) -> None:
        detail = ""
        if expected is not None or actual is not None:
            detail = f" (expected {_fmt(expected)}, got {_fmt(actual)})"
        super().__init__(f"{message}{detail}")
        self.expected = None if expected is None else tuple(expected)
        self.actual = None if actual is None else tuple(actual)


class ContractViolationError(LazyNNError, RuntimeError):
    """
    Raised when a call sequence breaks the layer or evaluation contract.

    Typical causes are a `feed_backward` call with no unconsumed
    `feed_forward`, a `neutral_invariant` check finding buffered state, a
    missing named input, or a second write to an already evaluated handle.
    """


class EvaluationCycleError(ContractViolationError):
    """
    Raised when the evaluation plan observes a dependency cycle.

    Expression graphs are built bottom-up and are acyclic by construction, so
    this indicates corrupted registration state.

    Attributes
    ----------
    identity : int
        Identity of the unit at which the cycle was detected.
    """

    def __init__(self, identity: int) -> None:
        super().__init__(f"Dependency cycle detected at evaluation unit #{identity}.")
        self.identity = identity


class UndefinedValueError(LazyNNError, RuntimeError):
    """
    Raised when a handle is read before it reaches the evaluated state.

    Under correct registration this never happens; seeing it means a unit ran
    before one of its dependencies, or a value was read without forcing it.
    """


class DeviceNotSupportedError(LazyNNError, RuntimeError):
    """
    Raised when a kernel is requested on a device that has no implementation.

    Attributes
    ----------
    op : str
        The name of the operation that was attempted.
    device : str
        String representation of the device on which the operation was
        attempted.
    """

    def __init__(self, op: str, device: str) -> None:
        super().__init__(f"{op} is not implemented for device '{device}'.")
        self.op = op
        self.device = device


class DeviceMismatchError(LazyNNError, RuntimeError):
    """
    Raised when operands or evaluation units live on different devices.

    Attributes
    ----------
    device_a : str
        Device identifier of the first operand.
    device_b : str
        Device identifier of the second operand.
    """

    def __init__(self, device_a: str, device_b: str) -> None:
        super().__init__(f"Device mismatch: '{device_a}' vs '{device_b}'.")
        self.device_a = device_a
        self.device_b = device_b


def _fmt(shape: Optional[Sequence[int]]) -> str:
    if shape is None:
        return "?"
    return "(" + ", ".join(str(int(d)) for d in shape) + ")"
