"""
Layer interface definitions.

This module defines the domain-level interface for layers using structural
subtyping via `typing.Protocol`. Any object implementing the three operations
below participates in layer composition, independent of inheritance.

A layer is long-lived. It may be fed forward an arbitrary number of times
before being fed backward the same number of times; backward calls consume
forward-time state in last-in, first-out order.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ILayer(Protocol):
    """
    Domain-level layer interface.

    Notes
    -----
    - Inputs, outputs and gradients are passed as named bundles (`LayerIO`)
      so heterogeneous values carry no positional ambiguity.
    - Layers are not thread-safe: one logical caller issues a sequence of
      forward/backward calls on an instance.
    """

    @property
    def is_feedback_output(self) -> bool:
        """Whether `feed_backward` produces input gradients."""
        ...

    @property
    def is_update(self) -> bool:
        """Whether the layer owns externally updatable parameters."""
        ...

    def feed_forward(self, inputs: Any) -> Any:
        """
        Compute the named outputs from the named inputs.

        Parameters
        ----------
        inputs : LayerIO
            Bundle holding every input key the layer declares.

        Returns
        -------
        LayerIO
            Bundle holding the layer's outputs (possibly lazy expressions).
        """
        ...

    def feed_backward(self, grads: Any) -> Any:
        """
        Compute input gradients from output gradients.

        Parameters
        ----------
        grads : LayerIO
            Bundle of gradients keyed by the layer's output keys.

        Returns
        -------
        LayerIO
            Bundle of gradients keyed by the layer's input keys; empty for a
            backward-transparent layer.
        """
        ...

    def neutral_invariant(self) -> None:
        """
        Assert that no forward call is awaiting its matching backward call.

        Raises
        ------
        ContractViolationError
            If any internal buffer is non-empty.
        """
        ...
