"""Cyclomatic complexity of exec flow: one base path plus every extra linked exec output."""

from __future__ import annotations

from typing import Iterable

import networkx as nx

from flowgraph_layout.ir.graph import LayoutGraph
from flowgraph_layout.types import EdgeKind


def linked_exec_outputs(graph: LayoutGraph) -> dict[int, int]:
    """Number of distinct exec output pins with at least one link, per node id."""
    pins: dict[int, set[tuple[str, int]]] = {}
    for edge in graph.edges:
        if edge.kind is EdgeKind.EXEC:
            pins.setdefault(edge.src, set()).add((edge.src_pin, edge.src_pin_index))
    return {node_id: len(linked) for node_id, linked in pins.items()}


def cyclomatic_complexity(graph: LayoutGraph, node_ids: Iterable[int] | None = None) -> int:
    """``1 + sum(max(0, linked exec outputs - 1))`` over ``node_ids`` (default: every node).

    An empty node set scores 0.
    """
    ids = set(graph.node_ids()) if node_ids is None else set(node_ids).intersection(graph.node_ids())
    if not ids:
        return 0
    fan_out = linked_exec_outputs(graph)
    return 1 + sum(max(0, fan_out.get(node_id, 0) - 1) for node_id in ids)


def cyclomatic_complexity_for_selection(graph: LayoutGraph, selected_ids: Iterable[int]) -> int:
    """Sum of the complexity of every island touched by the selection."""
    undirected = graph.to_networkx().to_undirected()
    seeds = sorted(set(selected_ids).intersection(undirected.nodes))
    visited: set[int] = set()
    total = 0
    for seed in seeds:
        if seed in visited:
            continue
        component = nx.node_connected_component(undirected, seed)
        visited.update(component)
        total += cyclomatic_complexity(graph, component)
    return total
