"""
State-based method dispatch (a.k.a. "control-path" templating) via decorators.

This module provides a small mechanism for routing a single method call to one
of several registered implementations based on the value of a named attribute
on the receiving object (for evaluation units: its ``device``).

Core idea
---------
- You define a *base* method on a class (its signature becomes the canonical one).
- You then register multiple "control paths" for that method, each keyed by:
    (ClassName, MethodName, StateVal)
- At runtime, the installed wrapper reads the state attribute of ``self`` and
  dispatches to the implementation registered for that value.

Important notes
---------------
- The first registration replaces the method on the class with a dispatching
  wrapper. Subclasses inherit the wrapper and therefore the registered paths.
- Registered implementations are stored in a closure-local mapping owned by
  each builder. Different builders do not share mappings.
- Implementations are called like ordinary methods: ``sub_method(self, ...)``.
"""

from typing import (
    Callable,
    Dict,
    Hashable,
    Optional,
    Type,
    Any,
)
from typing_extensions import ParamSpec, TypeVar
from collections import namedtuple
from functools import wraps

P = ParamSpec("P")
R = TypeVar("R")

MethodKey = namedtuple("MethodKey", ["ClassName", "MethodName", "StateVal"])
"""Key identifying a control path: (owning class, base method, state value)."""

_MISSING = object()


def create_path_builder(
    state_attr: str,
) -> Callable[
    [Type, Callable[P, R], Hashable, Optional[Callable[[Callable, Any], Exception]]],
    Callable[[Callable[P, R]], Callable[P, R]],
]:
    """
    Create a "path builder" that dispatches on ``getattr(self, state_attr)``.

    The returned function is used like this::

        on_device = create_path_builder("device")

        class Unit:
            def eval(self) -> None: ...

        @on_device(Unit, Unit.eval, Device("cpu"))
        def unit_eval_cpu(self) -> None:
            ...

    Parameters
    ----------
    state_attr : str
        Name of the attribute read on ``self`` to select a path.

    Returns
    -------
    Callable
        ``templator(cls, method, state, trap_exception=None) -> decorator``.
        ``trap_exception`` is an optional factory ``(method, state) -> Exception``
        used to build the error raised when no path matches; without it a
        `NotImplementedError` is raised.
    """

    methods_map: Dict[MethodKey, Callable] = {}

    def templator(
        cls: Type,
        method: Callable[P, R],
        state: Hashable,
        trap_exception: Optional[Callable[[Callable, Any], Exception]] = None,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        try:
            hash(state)
        except TypeError:
            raise TypeError(f"Control path state must be hashable. Got {state!r}")

        method_name = method.__name__
        smk = MethodKey(cls.__name__, method_name, state)

        def decorator(sub_method: Callable[P, R]) -> Callable[P, R]:
            methods_map[smk] = sub_method

            @wraps(method)
            def wrapper(self: Any, *args: P.args, **kwargs: P.kwargs) -> Any:
                cur = getattr(self, state_attr, _MISSING)
                if cur is _MISSING:
                    raise NotImplementedError(
                        f"{type(self)} is missing attribute {state_attr!r}"
                    )
                sm = methods_map.get(MethodKey(cls.__name__, method_name, cur))
                if sm is not None:
                    return sm(self, *args, **kwargs)
                if trap_exception is None:
                    raise NotImplementedError(
                        f"Missing control path ({state_attr}={cur!r}) for {method_name}"
                    )
                raise trap_exception(method, cur)

            setattr(cls, method_name, wrapper)
            return sub_method

        return decorator

    return templator
