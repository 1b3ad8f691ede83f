"""Within-rank ordering: initial seeding, barycenter sweeps, zero-gap grouping."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flowgraph_layout.ir.keys import node_key_sort_key, pin_key_sort_key
from flowgraph_layout.layout.types import SugiyamaEdge, SugiyamaGraph
from flowgraph_layout.types import EdgeKind

logger = logging.getLogger(__name__)

CROSSING_DETAIL_NODE_LIMIT: int = 64


@dataclass
class SweepPass:
    """Which neighbours a single barycenter pass looks at."""

    forward: bool
    skip_data: bool = False


def _rank_lists(graph: SugiyamaGraph, max_rank: int) -> list[list[int]]:
    rank_nodes: list[list[int]] = [[] for _ in range(max_rank + 1)]
    for index, node in enumerate(graph.nodes):
        rank_nodes[node.rank].append(index)
    return rank_nodes


def _renumber(graph: SugiyamaGraph, nodes: list[int]) -> None:
    for order, index in enumerate(nodes):
        graph.nodes[index].order = order


def log_rank_orders(graph: SugiyamaGraph, rank_nodes: list[list[int]], label: str, stage: str) -> None:
    if not logger.isEnabledFor(logging.DEBUG) or len(graph.nodes) > CROSSING_DETAIL_NODE_LIMIT:
        return
    for rank, nodes in enumerate(rank_nodes):
        logger.debug(
            "Sugiyama[%s] %s rank=%d: %s",
            label,
            stage,
            rank,
            " ".join(str(graph.nodes[i].key) for i in nodes),
        )


# ─── Initial Order ───────────────────────────────────────────────────────────


def assign_initial_order(graph: SugiyamaGraph, max_rank: int, label: str = "Component") -> list[list[int]]:
    """Seed each rank: exec nodes first, then more exec outputs, then key."""
    rank_nodes = _rank_lists(graph, max_rank)

    def seed_key(index: int) -> tuple:
        node = graph.nodes[index]
        return (0 if node.has_exec_pins else 1, -node.exec_output_pins, node_key_sort_key(node.key))

    for nodes in rank_nodes:
        nodes.sort(key=seed_key)
        _renumber(graph, nodes)
    log_rank_orders(graph, rank_nodes, label, "InitialOrder")
    return rank_nodes


# ─── Barycenter Sweeps ───────────────────────────────────────────────────────


def _neighbour_edges(graph: SugiyamaGraph) -> tuple[list[list[SugiyamaEdge]], list[list[SugiyamaEdge]]]:
    in_edges: list[list[SugiyamaEdge]] = [[] for _ in graph.nodes]
    out_edges: list[list[SugiyamaEdge]] = [[] for _ in graph.nodes]
    for edge in graph.edges:
        if edge.src == edge.dst:
            continue
        out_edges[edge.src].append(edge)
        in_edges[edge.dst].append(edge)
    for edges in in_edges:
        edges.sort(key=lambda e: pin_key_sort_key(e.src_pin))
    for edges in out_edges:
        edges.sort(key=lambda e: pin_key_sort_key(e.dst_pin))
    return in_edges, out_edges


def _barycenter(
    graph: SugiyamaGraph,
    index: int,
    sweep_pass: SweepPass,
    in_edges: list[list[SugiyamaEdge]],
    out_edges: list[list[SugiyamaEdge]],
) -> float:
    node = graph.nodes[index]
    total = 0.0
    count = 0
    if sweep_pass.forward:
        for edge in in_edges[index]:
            neighbour = graph.nodes[edge.src]
            if neighbour.rank != node.rank - 1:
                continue
            if edge.kind is not EdgeKind.EXEC and neighbour.exec_output_pins == 0:
                continue
            total += neighbour.order + edge.src_pin_index / max(1, neighbour.output_pins)
            count += 1
    else:
        for edge in out_edges[index]:
            neighbour = graph.nodes[edge.dst]
            if neighbour.rank != node.rank + 1:
                continue
            if sweep_pass.skip_data and (edge.kind is EdgeKind.EXEC or neighbour.exec_input_pins > 0):
                continue
            total += neighbour.order + edge.dst_pin_index / max(1, neighbour.input_pins)
            count += 1
    if count == 0:
        return float(node.order)
    return total / count


def _reorder_rank(
    graph: SugiyamaGraph,
    nodes: list[int],
    sweep_pass: SweepPass,
    in_edges: list[list[SugiyamaEdge]],
    out_edges: list[list[SugiyamaEdge]],
) -> None:
    bary = {index: _barycenter(graph, index, sweep_pass, in_edges, out_edges) for index in nodes}
    nodes.sort(key=lambda i: (bary[i], node_key_sort_key(graph.nodes[i].key)))
    _renumber(graph, nodes)


def run_crossing_reduction(
    graph: SugiyamaGraph,
    max_rank: int,
    sweeps: int,
    rank_nodes: list[list[int]],
    label: str = "Component",
) -> None:
    """Run ``sweeps`` fixed barycenter sweeps, then group zero-gap producers.

    ``rank_nodes`` is updated in place and every node's ``order`` matches its
    position in its rank list afterwards.
    """
    if max_rank > 0 and sweeps > 0:
        in_edges, out_edges = _neighbour_edges(graph)
        detail = logger.isEnabledFor(logging.DEBUG) and len(graph.nodes) <= CROSSING_DETAIL_NODE_LIMIT
        logger.debug(
            "Sugiyama[%s] CrossingReduction: sweeps=%d maxRank=%d crossings=%d",
            label,
            sweeps,
            max_rank,
            count_crossings(graph, rank_nodes) if detail else -1,
        )
        for sweep in range(sweeps):
            forward = SweepPass(forward=True)
            for rank in range(1, max_rank + 1):
                _reorder_rank(graph, rank_nodes[rank], forward, in_edges, out_edges)

            if sweep < sweeps - 1:
                data_only = SweepPass(forward=False, skip_data=True)
                for rank in range(max_rank - 1, -1, -1):
                    _reorder_rank(graph, rank_nodes[rank], data_only, in_edges, out_edges)

            if sweep < sweeps - 2:
                backward = SweepPass(forward=False)
                for rank in range(max_rank - 1, -1, -1):
                    _reorder_rank(graph, rank_nodes[rank], backward, in_edges, out_edges)

            for nodes in rank_nodes:
                nodes.sort(key=lambda i: (graph.nodes[i].order, node_key_sort_key(graph.nodes[i].key)))
                _renumber(graph, nodes)

            if detail:
                logger.debug(
                    "Sugiyama[%s] sweep=%d crossings=%d", label, sweep, count_crossings(graph, rank_nodes)
                )

    apply_zero_gap_ordering(graph, rank_nodes)
    log_rank_orders(graph, rank_nodes, label, "FinalOrder")


# ─── Zero-Gap Grouping ───────────────────────────────────────────────────────


def apply_zero_gap_ordering(graph: SugiyamaGraph, rank_nodes: list[list[int]]) -> None:
    """Place each same-rank ``min_len == 0`` producer right after its consumer."""
    sources_by_dst: dict[int, list[tuple[int, int, int]]] = {}
    zero_sources: set[int] = set()
    for edge in graph.edges:
        if edge.min_len != 0 or edge.src == edge.dst:
            continue
        src, dst = graph.nodes[edge.src], graph.nodes[edge.dst]
        if src.is_dummy or dst.is_dummy or src.rank != dst.rank:
            continue
        sources_by_dst.setdefault(edge.dst, []).append((edge.dst_pin_index, node_key_sort_key(src.key), edge.src))
        zero_sources.add(edge.src)

    if not sources_by_dst:
        return

    ordered_sources: dict[int, list[int]] = {}
    for dst, entries in sources_by_dst.items():
        entries.sort()
        unique: list[int] = []
        for _, _, src in entries:
            if src not in unique:
                unique.append(src)
        ordered_sources[dst] = unique

    for nodes in rank_nodes:
        placed: set[int] = set()
        result: list[int] = []

        def emit(start: int) -> None:
            stack = [start]
            while stack:
                current = stack.pop()
                if current in placed:
                    continue
                placed.add(current)
                result.append(current)
                for src in reversed(ordered_sources.get(current, [])):
                    if src not in placed:
                        stack.append(src)

        for index in nodes:
            if index not in zero_sources:
                emit(index)
        for index in nodes:
            if index not in placed:
                emit(index)

        nodes[:] = result
        _renumber(graph, nodes)


# ─── Diagnostics ─────────────────────────────────────────────────────────────


def count_crossings(graph: SugiyamaGraph, rank_nodes: list[list[int]]) -> int:
    """Pairwise crossings between adjacent ranks, by node order."""
    by_rank: dict[int, list[tuple[int, int]]] = {}
    for edge in graph.edges:
        src, dst = graph.nodes[edge.src], graph.nodes[edge.dst]
        if dst.rank != src.rank + 1:
            continue
        by_rank.setdefault(src.rank, []).append((src.order, dst.order))

    crossings = 0
    for segments in by_rank.values():
        for i in range(len(segments)):
            a_src, a_dst = segments[i]
            for b_src, b_dst in segments[i + 1 :]:
                if (a_src - b_src) * (a_dst - b_dst) < 0:
                    crossings += 1
    return crossings
