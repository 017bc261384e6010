"""
LIFO shape checker.

A layer may be fed forward any number of times, with a different shape each
time, before it is fed backward the same number of times. `ShapeChecker`
records the shape of every forward call and verifies, in reverse order, that
each backward call supplies a gradient of the matching shape.
"""

from __future__ import annotations

from typing import Iterable, List

from ...domain._errors import ContractViolationError, ShapeMismatchError
from ...domain._shape import Shape


class ShapeChecker:
    """
    Stack of forward-time shapes.

    Parameters
    ----------
    label : str, optional
        Diagnostic label used in error messages (e.g. the layer and key).
    """

    def __init__(self, label: str = "") -> None:
        self._label = label
        self._shapes: List[Shape] = []

    def push(self, shape: Iterable[int]) -> None:
        self._shapes.append(Shape(shape))

    def check_and_pop(self, shape: Iterable[int]) -> Shape:
        """
        Pop the most recent shape and compare it with `shape`.

        Returns
        -------
        Shape
            The popped shape.

        Raises
        ------
        ContractViolationError
            If nothing was pushed.
        ShapeMismatchError
            If the popped shape differs from `shape`.
        """
        if not self._shapes:
            raise ContractViolationError(f"{self._prefix()}shape checker is empty.")
        expected = self._shapes.pop()
        actual = Shape(shape)
        if expected != actual:
            raise ShapeMismatchError(
                f"{self._prefix()}shape mismatch", expected=expected, actual=actual
            )
        return expected

    def assert_empty(self) -> None:
        """
        Raises
        ------
        ContractViolationError
            If any shape is still recorded.
        """
        if self._shapes:
            raise ContractViolationError(
                f"{self._prefix()}{len(self._shapes)} shape(s) awaiting backward."
            )

    @property
    def empty(self) -> bool:
        return not self._shapes

    def __len__(self) -> int:
        return len(self._shapes)

    def _prefix(self) -> str:
        return f"{self._label}: " if self._label else ""
