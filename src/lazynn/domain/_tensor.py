"""
Tensor and expression interface definitions.

This module defines the domain-level contracts for values flowing between
layers, using structural typing:

- `IExpression`: anything that can report a shape and device without
  computing, and register itself with an evaluation plan. Both materialized
  tensors (leaves) and pending operator applications satisfy it.
- `ITensor`: a materialized dense value (a leaf expression with readable
  storage).

Layers and building functions type against these protocols so that lazy and
materialized values can be passed interchangeably in named bundles.
"""

from __future__ import annotations

from typing import Any, Protocol, Tuple, runtime_checkable

from ._shape import Shape
from .device._device import Device


@runtime_checkable
class IExpression(Protocol):
    """
    Lazy value interface.

    Notes
    -----
    - `shape` and `device` must be pure and cheap: they never force
      computation.
    - `eval_register` may be called any number of times, from any number of
      consumers, but must register the underlying computation at most once
      and always return the handle of the same result.
    """

    @property
    def identity(self) -> int:
        """Integer identity used as the deduplication key of this node."""
        ...

    @property
    def shape(self) -> Shape:
        """Shape of the value this expression denotes."""
        ...

    @property
    def device(self) -> Device:
        """Device the value will be materialized on."""
        ...

    def eval_register(self) -> Any:
        """
        Register this expression (and its operands) with the evaluation plan.

        Returns
        -------
        EvalHandle
            Handle of the output slot holding this expression's value.
        """
        ...


@runtime_checkable
class ITensor(IExpression, Protocol):
    """
    Materialized dense tensor interface.

    A tensor is a leaf expression: its handle is evaluated from the start.
    """

    def to_numpy(self) -> Any:
        """
        Return the backing array.

        Returns
        -------
        np.ndarray
            Read-only view of the storage (no copy).
        """
        ...

    def __getitem__(self, index: Tuple[int, ...]) -> float:
        """Read a single element."""
        ...
