"""Graph IR: the abstract node/pin/edge description a host hands to the layout.

A ``LayoutGraph`` may hold several disjoint components. The layout core never
mutates it; ``to_networkx()`` exposes a networkx view for topology queries and
component discovery.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import networkx as nx

from flowgraph_layout.ir.keys import (
    NodeKey,
    build_edge_stable_key,
    make_pin_key,
    node_key_for_id,
)
from flowgraph_layout.types import EdgeKind, PinDirection


@dataclass(frozen=True)
class LayoutNode:
    id: int
    key: NodeKey
    name: str = ""
    width: float = 0.0
    height: float = 0.0
    x: float = 0.0  # original top-left, used for anchoring
    y: float = 0.0
    has_exec_pins: bool = False
    is_variable_get: bool = False
    exec_input_pins: int = 0
    exec_output_pins: int = 0
    input_pins: int = 0  # all input pins, exec included
    output_pins: int = 0  # all output pins, exec included


@dataclass(frozen=True)
class LayoutEdge:
    src: int
    dst: int
    kind: EdgeKind = EdgeKind.DATA
    src_pin: str = ""
    src_pin_index: int = 0
    dst_pin: str = ""
    dst_pin_index: int = 0
    stable_key: str = ""


@dataclass
class LayoutGraph:
    """Nodes and edges of one logical graph as supplied by the host."""

    nodes: list[LayoutNode] = field(default_factory=list)
    edges: list[LayoutEdge] = field(default_factory=list)
    name: str = ""

    def add_node(self, node: LayoutNode) -> LayoutNode:
        self.nodes.append(node)
        return node

    def connect(
        self,
        src: int,
        dst: int,
        kind: EdgeKind = EdgeKind.DATA,
        src_pin: str = "",
        src_pin_index: int = 0,
        dst_pin: str = "",
        dst_pin_index: int = 0,
    ) -> LayoutEdge:
        """Append an edge, building its stable key from both endpoint pins."""
        stable_key = ""
        src_node = self.node_by_id(src)
        dst_node = self.node_by_id(dst)
        if src_node is not None and dst_node is not None:
            stable_key = build_edge_stable_key(
                make_pin_key(src_node.key, PinDirection.OUTPUT, src_pin, src_pin_index),
                make_pin_key(dst_node.key, PinDirection.INPUT, dst_pin, dst_pin_index),
            )
        edge = LayoutEdge(
            src=src,
            dst=dst,
            kind=kind,
            src_pin=src_pin,
            src_pin_index=src_pin_index,
            dst_pin=dst_pin,
            dst_pin_index=dst_pin_index,
            stable_key=stable_key,
        )
        self.edges.append(edge)
        return edge

    def node_by_id(self, node_id: int) -> LayoutNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> list[int]:
        return [node.id for node in self.nodes]

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return len(self.edges)

    def to_networkx(self) -> nx.MultiDiGraph:
        """Directed multigraph view; node attribute ``data`` holds the LayoutNode."""
        digraph: nx.MultiDiGraph = nx.MultiDiGraph()
        for node in self.nodes:
            digraph.add_node(node.id, data=node)
        for edge in self.edges:
            if edge.src not in digraph or edge.dst not in digraph:
                continue
            digraph.add_edge(edge.src, edge.dst, data=edge)
        return digraph

    # ─── JSON ────────────────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LayoutGraph:
        """Build a graph from the JSON document shape (see ``to_dict``)."""
        if not isinstance(data, Mapping):
            raise ValueError("graph document must be a JSON object")
        graph = cls(name=str(data.get("name", "")))
        seen: set[int] = set()
        for raw in _list(data, "nodes"):
            node = _node_from_dict(raw)
            if node.id in seen:
                raise ValueError(f"duplicate node id {node.id}")
            seen.add(node.id)
            graph.add_node(node)
        for raw in _list(data, "edges"):
            if not isinstance(raw, Mapping):
                raise ValueError(f"edge must be a JSON object: {raw!r}")
            try:
                src = int(raw["src"])
                dst = int(raw["dst"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"edge needs integer 'src' and 'dst': {raw!r}") from e
            graph.connect(
                src,
                dst,
                kind=EdgeKind.parse(str(raw.get("kind", "data"))),
                src_pin=str(raw.get("src_pin", "")),
                src_pin_index=_int(raw, "src_pin_index", 0),
                dst_pin=str(raw.get("dst_pin", "")),
                dst_pin_index=_int(raw, "dst_pin_index", 0),
            )
        return graph

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "nodes": [
                {
                    "id": n.id,
                    "key": str(n.key),
                    "name": n.name,
                    "size": [n.width, n.height],
                    "position": [n.x, n.y],
                    "has_exec_pins": n.has_exec_pins,
                    "is_variable_get": n.is_variable_get,
                    "exec_input_pins": n.exec_input_pins,
                    "exec_output_pins": n.exec_output_pins,
                    "input_pins": n.input_pins,
                    "output_pins": n.output_pins,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "src": e.src,
                    "dst": e.dst,
                    "kind": e.kind.value,
                    "src_pin": e.src_pin,
                    "src_pin_index": e.src_pin_index,
                    "dst_pin": e.dst_pin,
                    "dst_pin_index": e.dst_pin_index,
                }
                for e in self.edges
            ],
        }

    @classmethod
    def loads(cls, text: str) -> LayoutGraph:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str | Path) -> LayoutGraph:
        return cls.loads(Path(path).read_text())


def _list(data: Mapping[str, Any], name: str) -> list[Any]:
    value = data.get(name, [])
    if not isinstance(value, list):
        raise ValueError(f"'{name}' must be a JSON array: {value!r}")
    return value


def _int(raw: Mapping[str, Any], name: str, default: int) -> int:
    value = raw.get(name, default)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"'{name}' must be an integer: {value!r}") from e


def _pair(raw: Mapping[str, Any], name: str) -> tuple[float, float]:
    value = raw.get(name, (0.0, 0.0))
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"node '{name}' must be a [x, y] pair: {value!r}")
    try:
        return float(value[0]), float(value[1])
    except (TypeError, ValueError) as e:
        raise ValueError(f"node '{name}' must hold two numbers: {value!r}") from e


def _node_from_dict(raw: Mapping[str, Any]) -> LayoutNode:
    if not isinstance(raw, Mapping) or "id" not in raw:
        raise ValueError(f"node needs an 'id': {raw!r}")
    node_id = _int(raw, "id", 0)
    key_text = raw.get("key")
    if key_text and not isinstance(key_text, str):
        raise ValueError(f"node 'key' must be a string: {key_text!r}")
    key = NodeKey.parse(key_text) if key_text else node_key_for_id(node_id)
    width, height = _pair(raw, "size")
    x, y = _pair(raw, "position")
    exec_in = _int(raw, "exec_input_pins", 0)
    exec_out = _int(raw, "exec_output_pins", 0)
    return LayoutNode(
        id=node_id,
        key=key,
        name=str(raw.get("name", "")),
        width=width,
        height=height,
        x=x,
        y=y,
        has_exec_pins=bool(raw.get("has_exec_pins", exec_in + exec_out > 0)),
        is_variable_get=bool(raw.get("is_variable_get", False)),
        exec_input_pins=exec_in,
        exec_output_pins=exec_out,
        input_pins=_int(raw, "input_pins", exec_in),
        output_pins=_int(raw, "output_pins", exec_out),
    )
