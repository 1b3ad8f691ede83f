"""Sugiyama-style layered layout over exec/data graphs.

Phases:
  1. Cycle removal (deterministic DFS back-edge flipping)
  2. Layer assignment (longest path, optionally tightened by MaxLen edges)
  3. Exec tail padding
  4. Long-edge splitting with dummy nodes
  5. Initial order + crossing reduction (see ``crossing``)
"""

from __future__ import annotations

import logging
from enum import Enum, auto

import networkx as nx

from flowgraph_layout.ir.keys import (
    PinKey,
    make_dummy_pin_key,
    make_synthetic_node_key,
    node_key_sort_key,
    pin_key_sort_key,
)
from flowgraph_layout.layout.crossing import assign_initial_order, run_crossing_reduction
from flowgraph_layout.layout.types import SugiyamaEdge, SugiyamaGraph, SugiyamaNode, Vec2
from flowgraph_layout.layout.work import should_dump_detail
from flowgraph_layout.types import EdgeKind, PinDirection

logger = logging.getLogger(__name__)

MAX_LEN_TIGHTEN_SWEEPS: int = 10


def should_dump_sugiyama_detail(graph: SugiyamaGraph) -> bool:
    return should_dump_detail(len(graph.nodes), len(graph.edges))


def log_sugiyama_summary(label: str, stage: str, graph: SugiyamaGraph) -> None:
    logger.debug(
        "Sugiyama[%s] %s: nodes=%d edges=%d dummy=%d",
        label,
        stage,
        len(graph.nodes),
        len(graph.edges),
        graph.dummy_count(),
    )


def log_sugiyama_nodes(label: str, stage: str, graph: SugiyamaGraph) -> None:
    if not logger.isEnabledFor(logging.DEBUG) or not should_dump_sugiyama_detail(graph):
        return
    for index, node in enumerate(graph.nodes):
        logger.debug(
            "Sugiyama[%s] %s node[%d]: key=%s rank=%d order=%d size=(%.1f,%.1f) execOut=%d dummy=%d",
            label,
            stage,
            index,
            node.key,
            node.rank,
            node.order,
            node.size.x,
            node.size.y,
            node.exec_output_pins,
            node.is_dummy,
        )


def log_sugiyama_edges(label: str, stage: str, graph: SugiyamaGraph) -> None:
    if not logger.isEnabledFor(logging.DEBUG) or not should_dump_sugiyama_detail(graph):
        return
    for index, edge in enumerate(graph.edges):
        logger.debug(
            "Sugiyama[%s] %s edge[%d]: %s -> %s srcPin=%s dstPin=%s minLen=%d stable=%s",
            label,
            stage,
            index,
            graph.nodes[edge.src].key,
            graph.nodes[edge.dst].key,
            edge.src_pin,
            edge.dst_pin,
            edge.min_len,
            edge.stable_key,
        )


def _nodes_by_key(graph: SugiyamaGraph) -> list[int]:
    return sorted(range(len(graph.nodes)), key=lambda i: node_key_sort_key(graph.nodes[i].key))


# ─── Cycle Removal ───────────────────────────────────────────────────────────


class VisitState(Enum):
    UNVISITED = auto()
    VISITING = auto()
    DONE = auto()


def build_effective_out_edges(graph: SugiyamaGraph) -> list[list[int]]:
    """Out-edge lists honouring ``reversed`` flags, in deterministic visit order."""
    out_edges: list[list[int]] = [[] for _ in graph.nodes]
    for index, edge in enumerate(graph.edges):
        if edge.effective_src == edge.effective_dst:
            continue
        out_edges[edge.effective_src].append(index)

    def visit_key(index: int) -> tuple:
        edge = graph.edges[index]
        return (
            pin_key_sort_key(edge.effective_src_pin),
            node_key_sort_key(graph.nodes[edge.effective_dst].key),
            edge.stable_key,
            index,
        )

    for edge_list in out_edges:
        edge_list.sort(key=visit_key)
    return out_edges


def find_back_edges(graph: SugiyamaGraph, start_order: list[int] | None = None) -> list[int]:
    """Iterative three-colour DFS; returns indices of edges that close a cycle."""
    if start_order is None:
        start_order = _nodes_by_key(graph)
    out_edges = build_effective_out_edges(graph)
    state = [VisitState.UNVISITED] * len(graph.nodes)
    back_edges: list[int] = []

    for start in start_order:
        if state[start] is not VisitState.UNVISITED:
            continue
        # Stack entries: [node index, next out-edge position].
        stack: list[list[int]] = [[start, 0]]
        state[start] = VisitState.VISITING
        while stack:
            entry = stack[-1]
            node_index, next_edge = entry
            if next_edge >= len(out_edges[node_index]):
                state[node_index] = VisitState.DONE
                stack.pop()
                continue
            edge_index = out_edges[node_index][next_edge]
            entry[1] += 1
            nxt = graph.edges[edge_index].effective_dst
            if state[nxt] is VisitState.UNVISITED:
                state[nxt] = VisitState.VISITING
                stack.append([nxt, 0])
            elif state[nxt] is VisitState.VISITING:
                back_edges.append(edge_index)
    return back_edges


def _flip_priority(graph: SugiyamaGraph, index: int) -> tuple:
    edge = graph.edges[index]
    return (
        node_key_sort_key(graph.nodes[edge.effective_src].key),
        pin_key_sort_key(edge.effective_src_pin),
        node_key_sort_key(graph.nodes[edge.effective_dst].key),
        pin_key_sort_key(edge.effective_dst_pin),
        index,
    )


def remove_cycles(graph: SugiyamaGraph, label: str = "Component") -> int:
    """Flip the smallest back edge until the effective graph is a DAG.

    Returns the number of flips performed.
    """
    if len(graph.nodes) < 2 or not graph.edges:
        return 0

    logger.debug("Sugiyama[%s] RemoveCycles: start nodes=%d edges=%d", label, len(graph.nodes), len(graph.edges))
    start_order = _nodes_by_key(graph)
    flips = 0
    while True:
        back_edges = find_back_edges(graph, start_order)
        if not back_edges:
            logger.debug("Sugiyama[%s] RemoveCycles: done flips=%d", label, flips)
            return flips

        best = min(back_edges, key=lambda i: _flip_priority(graph, i))
        chosen = graph.edges[best]
        logger.debug(
            "Sugiyama[%s] RemoveCycles: backEdges=%d reverse edge %s -> %s stable=%s",
            label,
            len(back_edges),
            graph.nodes[chosen.effective_src].key,
            graph.nodes[chosen.effective_dst].key,
            chosen.stable_key,
        )
        chosen.reversed = not chosen.reversed
        flips += 1


def apply_edge_directions(graph: SugiyamaGraph) -> None:
    """Commit reversal flags by swapping endpoints and pin metadata."""
    for edge in graph.edges:
        if not edge.reversed:
            continue
        edge.src, edge.dst = edge.dst, edge.src
        edge.src_pin, edge.dst_pin = edge.dst_pin, edge.src_pin
        edge.src_pin_index, edge.dst_pin_index = edge.dst_pin_index, edge.src_pin_index
        edge.reversed = False


# ─── Layer Assignment ────────────────────────────────────────────────────────


def build_out_edges(graph: SugiyamaGraph) -> list[list[int]]:
    """Out-edge lists of the committed DAG, sorted for determinism."""
    out_edges: list[list[int]] = [[] for _ in graph.nodes]
    for index, edge in enumerate(graph.edges):
        if edge.src == edge.dst:
            continue
        out_edges[edge.src].append(index)

    def sort_key(index: int) -> tuple:
        edge = graph.edges[index]
        return (pin_key_sort_key(edge.src_pin), node_key_sort_key(graph.nodes[edge.dst].key), edge.stable_key, index)

    for edge_list in out_edges:
        edge_list.sort(key=sort_key)
    return out_edges


def edge_has_finite_max_len(graph: SugiyamaGraph, edge: SugiyamaEdge) -> bool:
    """Edges touching a pure data node are bounded to a gap of one rank."""
    if edge.src == edge.dst:
        return False
    return not graph.nodes[edge.src].has_exec_pins or not graph.nodes[edge.dst].has_exec_pins


def graph_uses_finite_max_len(graph: SugiyamaGraph) -> bool:
    return any(edge_has_finite_max_len(graph, edge) for edge in graph.edges)


def build_rank_digraph(graph: SugiyamaGraph) -> nx.DiGraph:
    """Committed edges as a networkx DiGraph over node indices, self-loops dropped."""
    digraph: nx.DiGraph = nx.DiGraph()
    digraph.add_nodes_from(range(len(graph.nodes)))
    digraph.add_edges_from((edge.src, edge.dst) for edge in graph.edges if edge.src != edge.dst)
    return digraph


def topological_order(graph: SugiyamaGraph) -> list[int]:
    """Topological order of node indices; ties go to the smaller NodeKey.

    A graph that still has cycles is ordered over its strongly connected
    components, members of one component following each other in key order.
    """
    digraph = build_rank_digraph(graph)

    def by_key(index: int) -> int:
        return node_key_sort_key(graph.nodes[index].key)

    try:
        return list(nx.lexicographical_topological_sort(digraph, key=by_key))
    except nx.NetworkXUnfeasible:
        logger.debug("TopoOrder: graph still has cycles, ordering by components (nodes=%d)", len(graph.nodes))

    condensed = nx.condensation(digraph)
    members = {c: sorted(condensed.nodes[c]["members"], key=by_key) for c in condensed}
    order: list[int] = []
    for component in nx.lexicographical_topological_sort(condensed, key=lambda c: by_key(members[c][0])):
        order.extend(members[component])
    return order


def assign_layers(graph: SugiyamaGraph, label: str = "Component") -> int:
    """Assign ``rank`` to every node; returns the maximum rank."""
    if not graph.nodes:
        return 0

    logger.debug("Sugiyama[%s] AssignLayers: nodes=%d edges=%d", label, len(graph.nodes), len(graph.edges))
    out_edges = build_out_edges(graph)
    topo = topological_order(graph)
    rank = [0] * len(graph.nodes)

    for node_index in topo:
        for edge_index in out_edges[node_index]:
            edge = graph.edges[edge_index]
            rank[edge.dst] = max(rank[edge.dst], rank[node_index] + edge.min_len)

    if graph_uses_finite_max_len(graph):
        logger.debug("Sugiyama[%s] AssignLayers: maxLen constraints enabled (data nodes maxLen=1)", label)
        bounded = {
            edge.src for edge in graph.edges if edge_has_finite_max_len(graph, edge)
        }
        for sweep in range(MAX_LEN_TIGHTEN_SWEEPS):
            updated = False
            for node_index in reversed(topo):
                if node_index not in bounded or not out_edges[node_index]:
                    continue
                target = min(rank[graph.edges[e].dst] - graph.edges[e].min_len for e in out_edges[node_index])
                target = max(target, rank[node_index])
                if target == rank[node_index]:
                    continue
                logger.debug(
                    "Sugiyama[%s] AssignLayers sweep=%d: pull %s rank %d -> %d",
                    label,
                    sweep,
                    graph.nodes[node_index].key,
                    rank[node_index],
                    target,
                )
                rank[node_index] = target
                updated = True
            if not updated:
                break

    max_rank = 0
    for index, node in enumerate(graph.nodes):
        node.rank = rank[index]
        max_rank = max(max_rank, rank[index])
    return max_rank


def pad_exec_tails(graph: SugiyamaGraph, max_rank: int, label: str = "Component") -> int:
    """Extend dead-end exec nodes to ``max_rank`` with a dummy tail edge.

    Returns the number of tails added.
    """
    exec_fan_out = [0] * len(graph.nodes)
    for edge in graph.edges:
        if edge.kind is EdgeKind.EXEC and edge.src != edge.dst:
            exec_fan_out[edge.src] += 1

    candidates = [
        index
        for index, node in enumerate(graph.nodes)
        if not node.is_dummy and node.has_exec_pins and exec_fan_out[index] == 0 and node.rank < max_rank
    ]
    candidates.sort(key=lambda i: node_key_sort_key(graph.nodes[i].key))

    for index in candidates:
        owner = graph.nodes[index]
        seed = f"ExecTail|{owner.key}"
        tail = SugiyamaNode(
            id=len(graph.nodes),
            key=make_synthetic_node_key(seed),
            name="ExecTail",
            input_pins=1,
            output_pins=1,
            exec_input_pins=1,
            exec_output_pins=1,
            has_exec_pins=True,
            size=Vec2(),
            rank=max_rank,
            is_dummy=True,
        )
        graph.nodes.append(tail)
        graph.edges.append(
            SugiyamaEdge(
                src=index,
                dst=tail.id,
                src_pin=PinKey(owner.key, PinDirection.OUTPUT, "ExecTail", 0),
                dst_pin=make_dummy_pin_key(tail.key, PinDirection.INPUT),
                kind=EdgeKind.EXEC,
                stable_key=seed,
            )
        )
    if candidates:
        logger.debug("Sugiyama[%s] PadExecTails: added=%d maxRank=%d", label, len(candidates), max_rank)
    return len(candidates)


# ─── Long-Edge Splitting ─────────────────────────────────────────────────────


def split_long_edges(graph: SugiyamaGraph, label: str = "Component") -> int:
    """Insert dummy nodes so every edge spans at most one rank; returns dummies added."""
    new_edges: list[SugiyamaEdge] = []
    dummy_added = 0
    split_count = 0

    for edge in graph.edges:
        src_rank = graph.nodes[edge.src].rank
        rank_diff = graph.nodes[edge.dst].rank - src_rank
        if rank_diff <= 1:
            new_edges.append(edge)
            continue

        split_count += 1
        dummy_added += rank_diff - 1
        is_exec = edge.kind is EdgeKind.EXEC
        prev = edge.src
        for step in range(1, rank_diff):
            dummy = SugiyamaNode(
                id=len(graph.nodes),
                key=make_synthetic_node_key(f"Dummy|{edge.stable_key}|{step}"),
                name="Dummy",
                input_pins=1,
                output_pins=1,
                exec_input_pins=1 if is_exec else 0,
                exec_output_pins=1 if is_exec else 0,
                has_exec_pins=is_exec,
                size=Vec2(),
                rank=src_rank + step,
                is_dummy=True,
            )
            graph.nodes.append(dummy)
            if prev == edge.src:
                src_pin, src_pin_index = edge.src_pin, edge.src_pin_index
            else:
                src_pin, src_pin_index = make_dummy_pin_key(graph.nodes[prev].key, PinDirection.OUTPUT), 0
            new_edges.append(
                SugiyamaEdge(
                    src=prev,
                    dst=dummy.id,
                    src_pin=src_pin,
                    dst_pin=make_dummy_pin_key(dummy.key, PinDirection.INPUT),
                    src_pin_index=src_pin_index,
                    dst_pin_index=0,
                    kind=edge.kind,
                    stable_key=f"{edge.stable_key}|seg{step}",
                )
            )
            prev = dummy.id

        new_edges.append(
            SugiyamaEdge(
                src=prev,
                dst=edge.dst,
                src_pin=make_dummy_pin_key(graph.nodes[prev].key, PinDirection.OUTPUT),
                dst_pin=edge.dst_pin,
                src_pin_index=0,
                dst_pin_index=edge.dst_pin_index,
                kind=edge.kind,
                stable_key=f"{edge.stable_key}|seg{rank_diff}",
            )
        )

    graph.edges = new_edges
    logger.debug(
        "Sugiyama[%s] SplitLongEdges: nodes=%d dummyAdded=%d edges=%d splitEdges=%d",
        label,
        len(graph.nodes),
        dummy_added,
        len(graph.edges),
        split_count,
    )
    return dummy_added


# ─── Pipeline ────────────────────────────────────────────────────────────────


def run_sugiyama(graph: SugiyamaGraph, sweeps: int, label: str = "Component") -> tuple[int, list[list[int]]]:
    """Break cycles, layer, pad, split and order. Returns (max rank, per-rank node lists)."""
    log_sugiyama_summary(label, "start", graph)
    log_sugiyama_nodes(label, "start", graph)
    log_sugiyama_edges(label, "start", graph)

    remove_cycles(graph, label)
    apply_edge_directions(graph)
    log_sugiyama_edges(label, "afterCycle", graph)

    max_rank = assign_layers(graph, label)
    pad_exec_tails(graph, max_rank, label)
    split_long_edges(graph, label)
    max_rank = max([max_rank] + [node.rank for node in graph.nodes])

    rank_nodes = assign_initial_order(graph, max_rank, label)
    run_crossing_reduction(graph, max_rank, sweeps, rank_nodes, label)

    log_sugiyama_summary(label, "final", graph)
    log_sugiyama_nodes(label, "final", graph)
    log_sugiyama_edges(label, "final", graph)
    return max_rank, rank_nodes
