"""
Composite layers.

A `ComposeLayer` wires named outputs of its sublayers to named inputs of other
sublayers, forming a DAG. The wiring is described with a `ComposeTopology`:

    topo = (
        ComposeTopology()
        .input("input", "act1", "input")        # composite input -> sublayer input
        .connect("act1", "output", "act2", "input")
        .output("output", "act2", "output")     # sublayer output -> composite output
    )
    layer = ComposeLayer("block", [SigmoidLayer("act1", ...), TanhLayer("act2", ...)], topo)

Sublayers are referenced by name, so names must be unique within a composite.

Construction validates the wiring: every sublayer input is fed by exactly one
source, every referenced key exists, and the sublayer graph is acyclic.
Sublayers are then sorted topologically.

`feed_forward` calls the sublayers in topological order. `feed_backward` calls
them in reverse order, summing gradients where an output fans out to several
consumers or a composite input feeds several sublayer inputs. The composite
keeps no state of its own: its capability flags are the OR of its children's,
and its neutral invariant is theirs.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from typing_extensions import Self

from ...domain._errors import ContractViolationError
from ...domain._tensor import IExpression
from ..operators import _elementwise as ew
from ._layer import Layer
from ._layer_config import layer_from_config, layer_to_config, register_layer
from ._layer_io import LayerIO

# (sublayer name, key)
Port = Tuple[str, str]


class ComposeTopology:
    """
    Builder describing how a composite routes values between sublayers.

    All methods return ``self`` so calls can be chained.
    """

    def __init__(self) -> None:
        self._inputs: List[Tuple[str, str, str]] = []
        self._connections: List[Tuple[str, str, str, str]] = []
        self._outputs: Dict[str, Port] = {}

    def input(self, key: str, layer: str, layer_key: str) -> "ComposeTopology":
        """Feed composite input `key` into `layer_key` of sublayer `layer`."""
        self._inputs.append((key, layer, layer_key))
        return self

    def connect(
        self, src: str, src_key: str, dst: str, dst_key: str
    ) -> "ComposeTopology":
        """Feed output `src_key` of `src` into input `dst_key` of `dst`."""
        self._connections.append((src, src_key, dst, dst_key))
        return self

    def output(self, key: str, layer: str, layer_key: str) -> "ComposeTopology":
        """Expose output `layer_key` of sublayer `layer` as composite output `key`."""
        if key in self._outputs:
            raise ContractViolationError(f"Composite output {key!r} declared twice.")
        self._outputs[key] = (layer, layer_key)
        return self

    @property
    def inputs(self) -> List[Tuple[str, str, str]]:
        return list(self._inputs)

    @property
    def connections(self) -> List[Tuple[str, str, str, str]]:
        return list(self._connections)

    @property
    def outputs(self) -> Dict[str, Port]:
        return dict(self._outputs)

    def to_config(self) -> Dict[str, Any]:
        return {
            "inputs": [list(x) for x in self._inputs],
            "connections": [list(x) for x in self._connections],
            "outputs": {k: list(v) for k, v in self._outputs.items()},
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ComposeTopology":
        topo = cls()
        for key, layer, layer_key in cfg.get("inputs", []):
            topo.input(key, layer, layer_key)
        for src, src_key, dst, dst_key in cfg.get("connections", []):
            topo.connect(src, src_key, dst, dst_key)
        for key, (layer, layer_key) in cfg.get("outputs", {}).items():
            topo.output(key, layer, layer_key)
        return topo


def _sum(values: Sequence[IExpression]) -> IExpression:
    total = values[0]
    for v in values[1:]:
        total = ew.add(total, v)
    return total


@register_layer()
class ComposeLayer(Layer):
    """
    Layer built from named sublayers and a routing topology.

    Parameters
    ----------
    name : str
        Diagnostic name.
    sublayers : Sequence[Layer]
        Sublayers, with unique names.
    topology : ComposeTopology
        Routing between composite inputs, sublayers and composite outputs.

    Raises
    ------
    ContractViolationError
        If the wiring is invalid (unknown sublayer or key, an input fed
        twice or not at all, duplicate names, or a cycle).
    """

    supports_update = True

    def __init__(
        self,
        name: Optional[str],
        sublayers: Sequence[Layer],
        topology: ComposeTopology,
    ) -> None:
        layers: Dict[str, Layer] = {}
        for layer in sublayers:
            if layer.name in layers:
                raise ContractViolationError(f"Duplicate sublayer name {layer.name!r}.")
            layers[layer.name] = layer

        self._layers = layers
        self._topology = topology
        self.input_keys = tuple(dict.fromkeys(key for key, _, _ in topology.inputs))
        self.output_keys = tuple(topology.outputs)

        super().__init__(
            name,
            feedback_output=any(l.is_feedback_output for l in sublayers),
            update=any(l.is_update for l in sublayers),
        )

        # (sublayer, input key) -> (fed by a composite input?, source port)
        self._sources: Dict[Port, Tuple[bool, Port]] = {}
        self._validate()
        self._order = self._sort()

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------
    def _layer(self, name: str) -> Layer:
        try:
            return self._layers[name]
        except KeyError:
            raise ContractViolationError(
                f"{self.name}: unknown sublayer {name!r}."
            ) from None

    def _check_key(self, layer: Layer, key: str, keys: Tuple[str, ...]) -> None:
        if key not in keys:
            raise ContractViolationError(
                f"{self.name}: sublayer {layer.name!r} has no key {key!r}."
            )

    def _feed(self, dst: Port, from_input: bool, src: Port) -> None:
        if dst in self._sources:
            raise ContractViolationError(f"{self.name}: {dst} is fed twice.")
        self._sources[dst] = (from_input, src)

    def _validate(self) -> None:
        for key, name, layer_key in self._topology.inputs:
            layer = self._layer(name)
            self._check_key(layer, layer_key, layer.input_keys)
            self._feed((name, layer_key), True, ("", key))

        for src, src_key, dst, dst_key in self._topology.connections:
            src_layer, dst_layer = self._layer(src), self._layer(dst)
            self._check_key(src_layer, src_key, src_layer.output_keys)
            self._check_key(dst_layer, dst_key, dst_layer.input_keys)
            self._feed((dst, dst_key), False, (src, src_key))

        for name, layer_key in self._topology.outputs.values():
            layer = self._layer(name)
            self._check_key(layer, layer_key, layer.output_keys)

        for name, layer in self._layers.items():
            for key in layer.input_keys:
                if (name, key) not in self._sources:
                    raise ContractViolationError(
                        f"{self.name}: input {key!r} of sublayer {name!r} is not connected."
                    )

    def _sort(self) -> List[Layer]:
        indegree = {name: 0 for name in self._layers}
        successors: Dict[str, List[str]] = defaultdict(list)
        for src, _, dst, _ in self._topology.connections:
            successors[src].append(dst)
            indegree[dst] += 1

        ready = [name for name in self._layers if indegree[name] == 0]
        order: List[Layer] = []
        while ready:
            name = ready.pop(0)
            order.append(self._layers[name])
            for nxt in successors[name]:
                indegree[nxt] -= 1
                if indegree[nxt] == 0:
                    ready.append(nxt)

        if len(order) != len(self._layers):
            stuck = sorted(n for n, d in indegree.items() if d > 0)
            raise ContractViolationError(f"{self.name}: sublayer cycle through {stuck}.")
        return order

    @property
    def sublayers(self) -> Tuple[Layer, ...]:
        """Sublayers in execution order."""
        return tuple(self._order)

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------
    def feed_forward(self, inputs: Mapping[str, IExpression]) -> LayerIO:
        values = self._pick(inputs, self.input_keys)
        produced: Dict[Port, IExpression] = {}

        for layer in self._order:
            feed = {}
            for key in layer.input_keys:
                from_input, (src, src_key) = self._sources[(layer.name, key)]
                feed[key] = values[src_key] if from_input else produced[(src, src_key)]
            out = layer.feed_forward(layer.input_container(feed))
            for key in layer.output_keys:
                produced[(layer.name, key)] = out[key]

        return self.output_container(
            {key: produced[port] for key, port in self._topology.outputs.items()}
        )

    def feed_backward(self, grads: Mapping[str, IExpression]) -> LayerIO:
        """
        Delegate backward to the sublayers in reverse topological order.

        Composite inputs whose consumers produce no gradient are left out of
        the returned bundle.

        Raises
        ------
        ContractViolationError
            If a gradient key is missing, or a backward-enabled sublayer
            receives no gradient for one of its outputs.
        """
        if not self.backward_enabled:
            return self.input_container()

        out_grads = self._pick(grads, self.output_keys)
        pending: Dict[Port, List[IExpression]] = defaultdict(list)
        for key, port in self._topology.outputs.items():
            pending[port].append(out_grads[key])

        input_grads: Dict[str, List[IExpression]] = defaultdict(list)
        for layer in reversed(self._order):
            if not layer.backward_enabled:
                continue

            feed = {}
            for key in layer.output_keys:
                received = pending.pop((layer.name, key), None)
                if not received:
                    raise ContractViolationError(
                        f"{self.name}: sublayer {layer.name!r} received no gradient for {key!r}."
                    )
                feed[key] = _sum(received)

            back = layer.feed_backward(layer.output_container(feed))
            for key, grad in back.items():
                from_input, (src, src_key) = self._sources[(layer.name, key)]
                if from_input:
                    input_grads[src_key].append(grad)
                else:
                    pending[(src, src_key)].append(grad)

        return self.input_container({k: _sum(v) for k, v in input_grads.items()})

    def neutral_invariant(self) -> None:
        for layer in self._order:
            layer.neutral_invariant()

    @property
    def buffered_count(self) -> int:
        return max((layer.buffered_count for layer in self._order), default=0)

    def parameters(self):
        for layer in self._order:
            yield from layer.parameters()

    # ------------------------------------------------------------------
    # Configuration hooks
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "sublayers": [layer_to_config(layer) for layer in self._layers.values()],
            "topology": self._topology.to_config(),
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        sublayers = [layer_from_config(node) for node in cfg["sublayers"]]
        return cls(cfg.get("name"), sublayers, ComposeTopology.from_config(cfg["topology"]))
