"""Host adapter: lay out every selected island of a whole graph.

An island is a connected component of the undirected pin graph. Islands
without a selected node are left where they are.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field, replace
from typing import Iterable

import networkx as nx

from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.graph import LayoutGraph
from flowgraph_layout.ir.keys import NodeKey, node_key_sort_key
from flowgraph_layout.layout.engine import layout_component

logger = logging.getLogger(__name__)

DEFAULT_NODE_WIDTH: float = 300.0
DEFAULT_NODE_HEIGHT: float = 100.0
SIZE_EPSILON: float = 1e-4


class NodeSizeCache:
    """Last known node sizes keyed by (graph name, node key). Thread-safe."""

    def __init__(self) -> None:
        self._sizes: dict[tuple[str, NodeKey], tuple[float, float]] = {}
        self._lock = threading.Lock()

    def get(self, graph_name: str, key: NodeKey) -> tuple[float, float] | None:
        with self._lock:
            return self._sizes.get((graph_name, key))

    def put(self, graph_name: str, key: NodeKey, size: tuple[float, float]) -> None:
        with self._lock:
            self._sizes[(graph_name, key)] = size

    def clear(self) -> None:
        with self._lock:
            self._sizes.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sizes)


@dataclass
class IslandLayoutResult:
    success: bool = False
    error: str = ""
    guidance: str = ""
    positions: dict[int, tuple[int, int]] = field(default_factory=dict)
    nodes_laid_out: int = 0
    components_laid_out: int = 0

    @classmethod
    def failed(cls, error: str, guidance: str) -> IslandLayoutResult:
        logger.info("Island layout failed: %s", error)
        return cls(success=False, error=error, guidance=guidance)

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict:
        """JSON-ready summary: positions keyed by node id string."""
        return {
            "positions": {str(node_id): list(pos) for node_id, pos in sorted(self.positions.items())},
            "components": self.components_laid_out,
            "nodes": self.nodes_laid_out,
        }


def find_components(graph: LayoutGraph) -> list[list[int]]:
    """Connected components as node-id lists, members and components ordered by NodeKey."""
    undirected = graph.to_networkx().to_undirected()
    keys = {node.id: node_key_sort_key(node.key) for node in graph.nodes}

    components: list[list[int]] = []
    for members in nx.connected_components(undirected):
        components.append(sorted(members, key=lambda node_id: (keys[node_id], node_id)))
    components.sort(key=lambda component: (keys[component[0]], component[0]))
    return components


def resolve_node_sizes(graph: LayoutGraph, size_cache: NodeSizeCache | None = None) -> LayoutGraph:
    """Return a copy of ``graph`` in which every node has a usable size."""
    resolved = LayoutGraph(edges=list(graph.edges), name=graph.name)
    for node in graph.nodes:
        width, height = node.width, node.height
        if width > SIZE_EPSILON and height > SIZE_EPSILON:
            if size_cache is not None:
                size_cache.put(graph.name, node.key, (width, height))
            resolved.add_node(node)
            continue

        cached = size_cache.get(graph.name, node.key) if size_cache is not None else None
        if cached is not None:
            width, height = cached
        if width <= SIZE_EPSILON:
            width = DEFAULT_NODE_WIDTH
        if height <= SIZE_EPSILON:
            height = DEFAULT_NODE_HEIGHT
        logger.debug("Using fallback size (%.1f, %.1f) for node %d", width, height, node.id)
        resolved.add_node(replace(node, width=width, height=height))
    return resolved


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def layout_islands(
    graph: LayoutGraph,
    selected_ids: Iterable[int] | None = None,
    settings: LayoutSettings | None = None,
    size_cache: NodeSizeCache | None = None,
) -> IslandLayoutResult:
    """Lay out each island that contains a selected node.

    ``selected_ids=None`` selects the whole graph. Positions are rounded to
    integer pixels.
    """
    if not graph.nodes:
        return IslandLayoutResult.failed("Graph has no nodes to layout.", "Add nodes to the graph and retry.")

    present = set(graph.node_ids())
    selected = present if selected_ids is None else present.intersection(selected_ids)
    if not selected:
        return IslandLayoutResult.failed(
            "No selected nodes are eligible for layout.", "Select nodes in the graph and retry."
        )

    resolved = resolve_node_sizes(graph, size_cache)
    components = [c for c in find_components(resolved) if selected.intersection(c)]
    logger.debug(
        "Islands: nodes=%d edges=%d selected=%d components=%d",
        resolved.node_count(),
        resolved.edge_count(),
        len(selected),
        len(components),
    )
    if not components:
        return IslandLayoutResult.failed(
            "No connected components found for the selected nodes.", "Select nodes connected by pins and retry."
        )

    result = IslandLayoutResult(success=True)
    for index, component in enumerate(components):
        outcome = layout_component(resolved, component, settings, label=f"Island{index}")
        if not outcome:
            return IslandLayoutResult.failed(
                outcome.error or "Layout failed for component.", "Verify the graph connectivity and retry."
            )
        result.components_laid_out += 1
        for node_id, position in outcome.positions.items():
            result.positions[node_id] = (_round_half_away(position.x), _round_half_away(position.y))

    result.nodes_laid_out = len(result.positions)
    return result
