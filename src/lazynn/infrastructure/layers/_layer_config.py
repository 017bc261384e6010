from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type

_LAYER_REGISTRY: Dict[str, Type[Any]] = {}


def register_layer(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a Layer class for reconstruction from config.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _LAYER_REGISTRY[key] = cls
        return cls

    return deco


def layer_to_config(layer: Any) -> Dict[str, Any]:
    """
    Convert a layer into a JSON-compatible configuration node.

    Node format
    -----------
    {
      "type": "SigmoidLayer",
      "config": {...}
    }

    Composite layers nest their sublayers inside their own ``config``.
    """
    get_cfg = getattr(layer, "get_config", None)
    cfg = get_cfg() if callable(get_cfg) else {}
    return {"type": layer.__class__.__name__, "config": cfg}


def layer_from_config(node: Dict[str, Any]) -> Any:
    """
    Rebuild a layer from a configuration node.

    Raises
    ------
    ValueError
        If the node names an unregistered layer type.
    """
    type_name = str(node["type"])
    if type_name not in _LAYER_REGISTRY:
        raise ValueError(
            f"Unknown layer type '{type_name}'. Register it via @register_layer."
        )

    cls = _LAYER_REGISTRY[type_name]
    cfg = node.get("config", {}) or {}
    return cls.from_config(cfg)
