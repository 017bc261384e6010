"""
Infrastructure layer base class.

This module provides `Layer`, the concrete base of every elementary layer. It
implements the bookkeeping shared by all of them so subclasses only describe
their transform and its derivative:

- picking the declared named inputs out of a `LayerIO` bundle,
- the per-layer LIFO stacks holding forward-time values needed by backward,
- shape checkers pairing every forward call with its backward call,
- the backward-transparent short cut for layers without backward support,
- the neutral invariant check,
- `get_config` / `from_config` hooks used by the layer registry.

Subclass contract
-----------------
Subclasses implement:

``_forward(inputs) -> outputs``
    Both are plain dicts keyed by the declared input/output keys. Values
    needed later are saved with ``self._save(stack_name, value)``; saving is
    a no-op when backward is disabled.

``_backward(grads) -> input_grads``
    Called only when backward is enabled. Pops saved values with
    ``self._restore(stack_name)`` and returns a gradient for every input key.

Shape checking at both boundaries and the pending-call count are handled
here.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from typing_extensions import Self

from ...domain._errors import ContractViolationError
from ...domain._layer import ILayer
from ...domain._parameter import IParameter
from ...domain._policy import LayerPolicy
from ...domain._tensor import IExpression
from ._layer_io import LAYER_INPUT, LAYER_OUTPUT, LayerIO
from ._shape_checker import ShapeChecker

Values = Dict[str, IExpression]


class LayerStack:
    """
    LIFO buffer of forward-time values owned by one layer.

    Parameters
    ----------
    label : str
        Diagnostic label used in error messages.
    """

    def __init__(self, label: str) -> None:
        self._label = label
        self._items: List[Any] = []

    def push(self, value: Any) -> None:
        self._items.append(value)

    def pop(self) -> Any:
        """
        Raises
        ------
        ContractViolationError
            If the stack is empty.
        """
        if not self._items:
            raise ContractViolationError(f"{self._label}: stack is empty.")
        return self._items.pop()

    @property
    def empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def assert_empty(self) -> None:
        if self._items:
            raise ContractViolationError(
                f"{self._label}: {len(self._items)} value(s) awaiting backward."
            )


class Layer(ILayer):
    """
    Base class for layers.

    Parameters
    ----------
    name : str, optional
        Diagnostic name. Defaults to the class name.
    feedback_output : bool, optional
        Enable input-gradient computation. Defaults to False, which makes
        the layer backward-transparent.
    update : bool, optional
        Mark owned parameters updatable and collect their gradients during
        backward (which requires ``feedback_output``). Only accepted by
        layers that declare ``supports_update = True``.

    Attributes
    ----------
    input_keys : tuple[str, ...]
        Keys `feed_forward` reads and `feed_backward` returns.
    output_keys : tuple[str, ...]
        Keys `feed_forward` returns and `feed_backward` reads.
    """

    input_keys: Tuple[str, ...] = (LAYER_INPUT,)
    output_keys: Tuple[str, ...] = (LAYER_OUTPUT,)
    supports_update: bool = False

    def __init__(
        self,
        name: Optional[str] = None,
        *,
        feedback_output: bool = False,
        update: bool = False,
    ) -> None:
        if update and not self.supports_update:
            raise ValueError(f"{type(self).__name__} has no updatable parameters.")
        self._name = name or type(self).__name__
        self._policy = LayerPolicy(bool(feedback_output), bool(update))
        self._pending = 0
        self._stacks: Dict[str, LayerStack] = {}
        self._parameters: Dict[str, IParameter] = {}
        self._in_checkers = {
            k: ShapeChecker(f"{self._name}[{k}]") for k in self.input_keys
        }
        self._out_checkers = {
            k: ShapeChecker(f"{self._name}[{k}]") for k in self.output_keys
        }

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._name

    @property
    def policy(self) -> LayerPolicy:
        return self._policy

    @property
    def is_feedback_output(self) -> bool:
        return self._policy.feedback_output

    @property
    def is_update(self) -> bool:
        return self._policy.update

    @property
    def backward_enabled(self) -> bool:
        return self._policy.backward_enabled

    @property
    def buffered_count(self) -> int:
        """Number of forward calls still awaiting their backward call."""
        return self._pending

    # ------------------------------------------------------------------
    # Bundles
    # ------------------------------------------------------------------
    def input_container(self, items: Optional[Mapping[str, IExpression]] = None) -> LayerIO:
        return LayerIO(self.input_keys, items)

    def output_container(self, items: Optional[Mapping[str, IExpression]] = None) -> LayerIO:
        return LayerIO(self.output_keys, items)

    def _pick(self, bundle: Mapping[str, IExpression], keys: Tuple[str, ...]) -> Values:
        missing = [k for k in keys if k not in bundle]
        if missing:
            raise ContractViolationError(
                f"{self._name}: missing value(s) for key(s) {missing}."
            )
        return {k: bundle[k] for k in keys}

    # ------------------------------------------------------------------
    # Stacks
    # ------------------------------------------------------------------
    def _save(self, stack_name: str, value: Any) -> None:
        if not self.backward_enabled:
            return
        stack = self._stacks.get(stack_name)
        if stack is None:
            stack = self._stacks[stack_name] = LayerStack(f"{self._name}.{stack_name}")
        stack.push(value)

    def _restore(self, stack_name: str) -> Any:
        stack = self._stacks.get(stack_name)
        if stack is None:
            raise ContractViolationError(f"{self._name}.{stack_name}: stack is empty.")
        return stack.pop()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------
    def feed_forward(self, inputs: Mapping[str, IExpression]) -> LayerIO:
        """
        Compute the named outputs from the named inputs.

        Raises
        ------
        ContractViolationError
            If a declared input key is missing.
        ShapeMismatchError
            If the inputs cannot be combined.
        """
        values = self._pick(inputs, self.input_keys)
        outputs = self._forward(values)

        if self.backward_enabled:
            for key in self.input_keys:
                self._in_checkers[key].push(values[key].shape)
            for key in self.output_keys:
                self._out_checkers[key].push(outputs[key].shape)
            self._pending += 1

        return self.output_container(outputs)

    def feed_backward(self, grads: Mapping[str, IExpression]) -> LayerIO:
        """
        Compute input gradients for the most recent unmatched forward call.

        Returns an empty bundle, without touching any state, when
        ``feedback_output`` is off, whatever the forward history.

        Raises
        ------
        ContractViolationError
            If no forward call is awaiting backward, or a gradient key is
            missing.
        ShapeMismatchError
            If a gradient shape disagrees with the paired forward call.
        """
        if not self.backward_enabled:
            return self.input_container()
        if self._pending == 0:
            raise ContractViolationError(
                f"{self._name}: feed_backward without a matching feed_forward."
            )

        out_grads = self._pick(grads, self.output_keys)
        for key in self.output_keys:
            self._out_checkers[key].check_and_pop(out_grads[key].shape)

        in_grads = self._backward(out_grads)
        self._pending -= 1
        for key in self.input_keys:
            self._in_checkers[key].check_and_pop(in_grads[key].shape)

        return self.input_container(in_grads)

    def neutral_invariant(self) -> None:
        """
        Raises
        ------
        ContractViolationError
            If a forward call is still awaiting its backward call.
        """
        if self._pending:
            raise ContractViolationError(
                f"{self._name}: {self._pending} forward call(s) awaiting backward."
            )
        for stack in self._stacks.values():
            stack.assert_empty()
        for checker in (*self._in_checkers.values(), *self._out_checkers.values()):
            checker.assert_empty()

    def __call__(self, inputs: Mapping[str, IExpression]) -> LayerIO:
        return self.feed_forward(inputs)

    def _forward(self, inputs: Values) -> Values:
        raise NotImplementedError

    def _backward(self, grads: Values) -> Values:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def register_parameter(self, name: str, param: IParameter) -> None:
        self._parameters[name] = param

    def parameters(self) -> Iterator[IParameter]:
        yield from self._parameters.values()

    # ------------------------------------------------------------------
    # Configuration hooks
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-compatible configuration for this layer.

        Returns
        -------
        Dict[str, Any]
            ``name`` and ``feedback_output``, plus ``update`` for layers that
            support it. Subclasses extend this with their own entries.
        """
        cfg: Dict[str, Any] = {
            "name": self._name,
            "feedback_output": self.is_feedback_output,
        }
        if self.supports_update:
            cfg["update"] = self.is_update
        return cfg

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        """Construct a layer from a `get_config` dictionary."""
        return cls(**cfg)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self._name!r}, "
            f"feedback_output={self.is_feedback_output}, update={self.is_update})"
        )
