"""
Named value bundles passed between layers.

A `LayerIO` maps string keys to tensors or lazy expressions. Each bundle is
restricted to a declared key set (a layer's input keys or output keys), so a
misspelled key is rejected instead of silently ignored.

Bundles are immutable: `set` returns a new bundle.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ...domain._errors import ContractViolationError
from ...domain._tensor import IExpression

LAYER_INPUT = "input"
LAYER_OUTPUT = "output"


class LayerIO(Mapping[str, IExpression]):
    """
    Immutable mapping from declared keys to expressions.

    Parameters
    ----------
    keys : Iterable[str]
        Allowed keys.
    items : Mapping[str, IExpression], optional
        Initial contents. Every key must be allowed.

    Raises
    ------
    ContractViolationError
        If `items` holds a key outside `keys`.
    """

    __slots__ = ("_keys", "_items")

    def __init__(
        self,
        keys: Iterable[str],
        items: Optional[Mapping[str, IExpression]] = None,
    ) -> None:
        self._keys: Tuple[str, ...] = tuple(keys)
        self._items: Dict[str, IExpression] = {}
        for key, value in (items or {}).items():
            self._check_key(key)
            self._items[key] = value

    @classmethod
    def of(cls, **items: IExpression) -> "LayerIO":
        """Build a bundle whose allowed keys are exactly the given ones."""
        return cls(items.keys(), items)

    def _check_key(self, key: str) -> None:
        if key not in self._keys:
            raise ContractViolationError(
                f"Key {key!r} is not one of the declared keys {self._keys}."
            )

    @property
    def allowed_keys(self) -> Tuple[str, ...]:
        return self._keys

    @property
    def is_empty(self) -> bool:
        return not self._items

    def set(self, key: str, value: IExpression) -> "LayerIO":
        """
        Return a copy of this bundle with `key` bound to `value`.

        Raises
        ------
        ContractViolationError
            If `key` is not declared.
        """
        self._check_key(key)
        items = dict(self._items)
        items[key] = value
        return LayerIO(self._keys, items)

    def __getitem__(self, key: str) -> IExpression:
        try:
            return self._items[key]
        except KeyError:
            raise ContractViolationError(f"Missing value for key {key!r}.") from None

    def get(self, key: str, default: Any = None) -> Any:
        return self._items.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._items.items())
        return f"LayerIO({inner})"
