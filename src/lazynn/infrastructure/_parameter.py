"""
Concrete updatable parameter implementation.

This module defines `Parameter`, an infrastructure-level implementation of the
domain contract `IParameter`. A `Parameter` is a named `Tensor` owned by an
update-capable layer, plus the gradients collected for it by that layer's
`feed_backward` calls.

Design notes
------------
- The value is frozen as soon as it takes part in a forward computation, so
  an optimizer never mutates it in place: it builds a new tensor and calls
  `assign`. Expressions built before the assignment keep the old value.
- Gradients are collected lazily. `grad` is the lazy sum of everything
  collected since the last `zero_grad`; forcing it is left to the caller.
- The `requires_grad` flag freezes a parameter without changing the layer:
  collected gradients are dropped while it is False.
"""

from __future__ import annotations

from typing import Any, Optional

from ..domain._errors import ShapeMismatchError
from ..domain._parameter import IParameter
from ..domain._shape import Shape
from ..domain._tensor import IExpression
from .tensor._tensor import Tensor


class Parameter(IParameter):
    """
    Named updatable tensor.

    Parameters
    ----------
    name : str
        Diagnostic name (e.g. ``"bias"``).
    value : Tensor
        Initial value.
    requires_grad : bool, optional
        Whether gradients should be collected. Defaults to True.
    """

    def __init__(self, name: str, value: Tensor, *, requires_grad: bool = True) -> None:
        self._name = str(name)
        self._value = value
        self._requires_grad = bool(requires_grad)
        self._grad: Optional[IExpression] = None
        self._grad_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> Tensor:
        return self._value

    @property
    def shape(self) -> Shape:
        return self._value.shape

    @property
    def requires_grad(self) -> bool:
        """
        Indicate whether this parameter collects gradients.

        Returns
        -------
        bool
            True if gradients are collected, False if frozen.
        """
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)

    def assign(self, value: Any) -> None:
        """
        Replace the current value.

        Parameters
        ----------
        value : Tensor | array-like
            New value. Array-likes are copied into a fresh tensor on the same
            device as the current value.

        Raises
        ------
        ShapeMismatchError
            If the new value has a different shape.
        """
        if not isinstance(value, Tensor):
            value = Tensor.from_numpy(value, self._value.device)
        if value.shape != self._value.shape:
            raise ShapeMismatchError(
                f"Cannot assign parameter '{self._name}'",
                expected=self._value.shape,
                actual=value.shape,
            )
        self._value = value

    @property
    def grad(self) -> Optional[IExpression]:
        """
        Return the collected gradient.

        Returns
        -------
        Optional[IExpression]
            Lazy sum of every gradient collected since the last `zero_grad`,
            or None if nothing has been collected. The same node is returned
            until the next `accumulate_grad` or `zero_grad`, so forcing it
            twice computes the sum once.
        """
        return self._grad

    @property
    def grad_count(self) -> int:
        """Number of gradients collected since the last `zero_grad`."""
        return self._grad_count

    def accumulate_grad(self, grad: IExpression) -> None:
        """
        Collect one gradient contribution.

        Raises
        ------
        ShapeMismatchError
            If `grad` does not have the parameter's shape.
        """
        if not self._requires_grad:
            return
        if grad.shape != self._value.shape:
            raise ShapeMismatchError(
                f"Gradient for parameter '{self._name}' has the wrong shape",
                expected=self._value.shape,
                actual=grad.shape,
            )
        self._grad = grad if self._grad is None else self._grad + grad
        self._grad_count += 1

    def zero_grad(self) -> None:
        """Forget every collected gradient."""
        self._grad = None
        self._grad_count = 0

    def __repr__(self) -> str:
        return f"Parameter({self._name!r}, shape={tuple(self.shape)})"
