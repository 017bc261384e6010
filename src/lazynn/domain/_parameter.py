"""
Parameter interface definitions.

A parameter is a named tensor owned by an update-capable layer. Layers only
*collect* gradients for their parameters; applying an update is left to an
external optimizer, which reads `grad` and writes a new value with `assign`.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class IParameter(Protocol):
    """
    Structural contract for updatable parameters.
    """

    @property
    def name(self) -> str:
        """Diagnostic name of the parameter."""
        ...

    @property
    def value(self) -> Any:
        """Current value (an `ITensor`)."""
        ...

    @property
    def grad(self) -> Optional[Any]:
        """
        Gradient collected since the last `zero_grad`.

        Returns
        -------
        Optional[IExpression]
            Lazy sum of the collected gradients, or None if nothing has been
            collected.
        """
        ...

    def assign(self, value: Any) -> None:
        """Replace the value; the shape must not change."""
        ...

    def zero_grad(self) -> None:
        """Clear the collected gradient."""
        ...
