"""Tests for layout/work.py and layout/sugiyama.py: working graph, cycle removal,
layering, exec-tail padding, long-edge splitting.

Acyclicity is checked by rebuilding the committed edges as a networkx DiGraph.
"""

from __future__ import annotations

import networkx as nx
import pytest

from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.graph import LayoutGraph, LayoutNode
from flowgraph_layout.ir.keys import NodeKey, make_pin_key, make_synthetic_node_key
from flowgraph_layout.layout.sugiyama import (
    apply_edge_directions,
    assign_layers,
    find_back_edges,
    graph_uses_finite_max_len,
    pad_exec_tails,
    remove_cycles,
    run_sugiyama,
    split_long_edges,
    topological_order,
)
from flowgraph_layout.layout.types import LayoutError, LayoutErrorKind, SugiyamaEdge, SugiyamaGraph, SugiyamaNode
from flowgraph_layout.layout.work import (
    build_sugiyama_graph,
    build_work_edges,
    build_work_nodes,
    single_consumer_targets,
    single_node_result,
)
from flowgraph_layout.types import EdgeKind, PinDirection

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_sugiyama(node_count: int, edges: list[tuple[int, int]], data_nodes: tuple[int, ...] = ()) -> SugiyamaGraph:
    """Nodes keyed 0..n-1; every edge is exec unless it touches a data node."""
    g = SugiyamaGraph()
    for i in range(node_count):
        is_exec = i not in data_nodes
        g.nodes.append(
            SugiyamaNode(
                id=i,
                key=NodeKey(i),
                input_pins=1,
                output_pins=2,
                exec_input_pins=1 if is_exec else 0,
                exec_output_pins=1 if is_exec else 0,
                has_exec_pins=is_exec,
                source_index=i,
            )
        )
    for n, (src, dst) in enumerate(edges):
        kind = EdgeKind.EXEC if src not in data_nodes and dst not in data_nodes else EdgeKind.DATA
        src_pin = make_pin_key(NodeKey(src), PinDirection.OUTPUT, "out", n)
        dst_pin = make_pin_key(NodeKey(dst), PinDirection.INPUT, "in", 0)
        g.edges.append(
            SugiyamaEdge(src=src, dst=dst, src_pin=src_pin, dst_pin=dst_pin, kind=kind, stable_key=f"{src_pin}->{dst_pin}")
        )
    return g


def as_digraph(g: SugiyamaGraph) -> nx.DiGraph:
    d: nx.DiGraph = nx.DiGraph()
    d.add_nodes_from(range(len(g.nodes)))
    d.add_edges_from((e.effective_src, e.effective_dst) for e in g.edges)
    return d


def ranks(g: SugiyamaGraph) -> list[int]:
    return [n.rank for n in g.nodes]


def layout_node(node_id: int, exec_pins: bool = True, **kwargs) -> LayoutNode:
    pins = 1 if exec_pins else 0
    defaults = dict(
        width=100.0,
        height=50.0,
        has_exec_pins=exec_pins,
        exec_input_pins=pins,
        exec_output_pins=pins,
        input_pins=pins,
        output_pins=pins,
    )
    defaults.update(kwargs)
    return LayoutNode(id=node_id, key=NodeKey(node_id), **defaults)


# ─── Working Graph ────────────────────────────────────────────────────────────


class TestWorkGraph:
    def test_nodes_are_sorted_and_deduplicated(self):
        g = LayoutGraph()
        for i in (3, 1, 2):
            g.add_node(layout_node(i))
        nodes, id_to_index = build_work_nodes(g, [3, 1, 3, 2])
        assert [n.graph_id for n in nodes] == [1, 2, 3]
        assert id_to_index == {1: 0, 2: 1, 3: 2}

    def test_missing_node_raises(self):
        g = LayoutGraph()
        g.add_node(layout_node(1))
        with pytest.raises(LayoutError) as info:
            build_work_nodes(g, [1, 42])
        assert info.value.kind is LayoutErrorKind.MISSING_NODE
        assert "42" in str(info.value)

    def test_sizes_and_pins_are_clamped(self):
        g = LayoutGraph()
        g.add_node(layout_node(1, width=-5.0, height=-1.0, input_pins=-2))
        nodes, _ = build_work_nodes(g, [1])
        assert nodes[0].size.x == 0.0
        assert nodes[0].size.y == 0.0
        assert nodes[0].input_pins == 0

    def test_single_node_keeps_original_position(self):
        g = LayoutGraph()
        g.add_node(layout_node(7, x=12.0, y=-4.0))
        nodes, _ = build_work_nodes(g, [7])
        result = single_node_result(nodes)
        assert result is not None
        assert result.positions[7].x == 12.0
        assert result.positions[7].y == -4.0
        assert result.anchor_id == 7

    def test_edges_filtered_and_sorted(self):
        g = LayoutGraph()
        for i in range(4):
            g.add_node(layout_node(i))
        g.connect(2, 1, kind=EdgeKind.EXEC, src_pin="then")
        g.connect(0, 1, kind=EdgeKind.EXEC, src_pin="then")
        g.connect(1, 1, src_pin="loop")
        g.connect(0, 3)
        nodes, id_to_index = build_work_nodes(g, [0, 1, 2])
        edges = build_work_edges(g, nodes, id_to_index)
        assert [(e.src, e.dst) for e in edges] == [(0, 1), (2, 1)]
        assert edges == sorted(edges, key=lambda e: e.stable_key)

    def test_negative_pin_index_clamped(self):
        g = LayoutGraph()
        g.add_node(layout_node(0))
        g.add_node(layout_node(1))
        g.connect(0, 1, src_pin_index=-3)
        nodes, id_to_index = build_work_nodes(g, [0, 1])
        assert build_work_edges(g, nodes, id_to_index)[0].src_pin_index == 0

    def test_variable_get_min_len(self):
        g = LayoutGraph()
        g.add_node(layout_node(0))
        g.add_node(layout_node(1))
        g.add_node(layout_node(2, exec_pins=False, is_variable_get=True))
        g.add_node(layout_node(3, exec_pins=False, is_variable_get=True))
        g.connect(0, 1, kind=EdgeKind.EXEC)
        g.connect(2, 1, dst_pin="a")
        g.connect(3, 0, dst_pin="b")
        g.connect(3, 1, dst_pin="c")
        nodes, id_to_index = build_work_nodes(g, [0, 1, 2, 3])
        edges = build_work_edges(g, nodes, id_to_index)
        assert single_consumer_targets(nodes, edges) == {2: 1}

        sg = build_sugiyama_graph(nodes, edges, LayoutSettings(variable_get_min_length=0))
        min_len = {(e.src, e.dst): e.min_len for e in sg.edges}
        assert min_len[(2, 1)] == 0
        assert min_len[(3, 0)] == 1
        assert min_len[(3, 1)] == 1
        assert min_len[(0, 1)] == 1


# ─── Cycle Removal ────────────────────────────────────────────────────────────


class TestCycleRemoval:
    def test_dag_untouched(self):
        g = make_sugiyama(3, [(0, 1), (1, 2)])
        assert remove_cycles(g) == 0
        assert not any(e.reversed for e in g.edges)

    def test_two_cycle_flips_one_edge(self):
        """A ⇄ B: DFS from A finds B → A as the back edge."""
        g = make_sugiyama(2, [(0, 1), (1, 0)])
        assert remove_cycles(g) == 1
        assert g.edges[1].reversed
        assert nx.is_directed_acyclic_graph(as_digraph(g))

    def test_complex_cycle(self):
        g = make_sugiyama(5, [(0, 1), (1, 2), (2, 0), (3, 1), (2, 4), (4, 3)])
        flips = remove_cycles(g)
        assert flips >= 1
        assert nx.is_directed_acyclic_graph(as_digraph(g))
        assert find_back_edges(g) == []

    def test_tiny_graphs_untouched(self):
        assert remove_cycles(make_sugiyama(1, [])) == 0
        assert remove_cycles(make_sugiyama(3, [])) == 0

    def test_apply_edge_directions_swaps_pins(self):
        g = make_sugiyama(2, [(0, 1), (1, 0)])
        remove_cycles(g)
        back = g.edges[1]
        old_src_pin, old_dst_pin = back.src_pin, back.dst_pin
        apply_edge_directions(g)
        assert (back.src, back.dst) == (0, 1)
        assert back.src_pin == old_dst_pin
        assert back.dst_pin == old_src_pin
        assert not back.reversed

    def test_deterministic(self):
        edges = [(0, 1), (1, 2), (2, 0), (2, 3), (3, 1)]
        a, b = make_sugiyama(4, edges), make_sugiyama(4, edges)
        remove_cycles(a)
        remove_cycles(b)
        assert [e.reversed for e in a.edges] == [e.reversed for e in b.edges]


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class TestAssignLayers:
    def test_chain(self):
        g = make_sugiyama(3, [(0, 1), (1, 2)])
        assert assign_layers(g) == 2
        assert ranks(g) == [0, 1, 2]

    def test_longest_path(self):
        g = make_sugiyama(4, [(0, 1), (1, 2), (0, 2), (2, 3)])
        assign_layers(g)
        assert ranks(g) == [0, 1, 2, 3]

    def test_topological_order_prefers_smaller_keys(self):
        g = make_sugiyama(4, [(3, 1), (2, 0)])
        assert topological_order(g) == [2, 0, 3, 1]

    def test_topological_order_matches_networkx(self):
        g = make_sugiyama(6, [(5, 0), (4, 0), (0, 3), (1, 3), (2, 1)])
        expected = list(nx.lexicographical_topological_sort(as_digraph(g)))
        assert topological_order(g) == expected == [2, 1, 4, 5, 0, 3]

    def test_topological_order_keeps_cycle_members_together(self):
        """Without cycle removal the 0<->1 cycle is ordered as one block."""
        g = make_sugiyama(3, [(0, 1), (1, 0), (2, 0)])
        assert topological_order(g) == [2, 0, 1]

    def test_data_producer_pulled_next_to_consumer(self):
        """A pure data node sits one rank before its only consumer."""
        g = make_sugiyama(5, [(0, 1), (1, 2), (2, 3), (4, 3)], data_nodes=(4,))
        assert graph_uses_finite_max_len(g)
        assign_layers(g)
        assert g.nodes[4].rank == g.nodes[3].rank - 1 == 2

    def test_data_producer_pulls_to_nearest_consumer(self):
        g = make_sugiyama(5, [(0, 1), (1, 2), (2, 3), (4, 1), (4, 3)], data_nodes=(4,))
        assign_layers(g)
        assert g.nodes[4].rank == 0
        for e in g.edges:
            assert g.nodes[e.dst].rank >= g.nodes[e.src].rank + e.min_len

    def test_zero_min_len_shares_rank(self):
        g = make_sugiyama(3, [(0, 1), (2, 1)], data_nodes=(2,))
        g.edges[1].min_len = 0
        assign_layers(g)
        assert g.nodes[2].rank == g.nodes[1].rank == 1

    def test_monotonic_after_cycle_removal(self):
        g = make_sugiyama(6, [(0, 1), (1, 2), (2, 0), (2, 3), (3, 4), (5, 4), (4, 2)], data_nodes=(5,))
        remove_cycles(g)
        apply_edge_directions(g)
        assign_layers(g)
        for e in g.edges:
            assert g.nodes[e.dst].rank >= g.nodes[e.src].rank + e.min_len


# ─── Exec Tails ───────────────────────────────────────────────────────────────


class TestPadExecTails:
    def test_dead_end_exec_node_is_padded(self):
        g = make_sugiyama(4, [(0, 1), (1, 2), (0, 3)])
        max_rank = assign_layers(g)
        assert pad_exec_tails(g, max_rank) == 1
        tail = g.nodes[-1]
        assert tail.is_dummy
        assert tail.rank == max_rank
        assert tail.key == make_synthetic_node_key(f"ExecTail|{NodeKey(3)}")
        edge = g.edges[-1]
        assert (edge.src, edge.dst) == (3, tail.id)
        assert edge.kind is EdgeKind.EXEC

    def test_data_nodes_and_last_rank_not_padded(self):
        g = make_sugiyama(3, [(0, 1), (2, 1)], data_nodes=(2,))
        max_rank = assign_layers(g)
        assert pad_exec_tails(g, max_rank) == 0
        assert len(g.nodes) == 3


# ─── Long-Edge Splitting ──────────────────────────────────────────────────────


class TestSplitLongEdges:
    def test_long_edge_becomes_chain(self):
        g = make_sugiyama(4, [(0, 1), (1, 2), (2, 3), (0, 3)])
        assign_layers(g)
        long_edge_key = g.edges[3].stable_key
        assert split_long_edges(g) == 2
        assert len(g.nodes) == 6
        assert len(g.edges) == 6

        dummies = [n for n in g.nodes if n.is_dummy]
        assert [d.rank for d in dummies] == [1, 2]
        assert dummies[0].key == make_synthetic_node_key(f"Dummy|{long_edge_key}|1")
        assert all(d.exec_input_pins == 1 and d.exec_output_pins == 1 for d in dummies)
        assert [e.stable_key for e in g.edges[3:]] == [f"{long_edge_key}|seg{i}" for i in (1, 2, 3)]
        for e in g.edges:
            assert g.nodes[e.dst].rank - g.nodes[e.src].rank == 1

    def test_data_dummies_have_no_exec_pins(self):
        g = make_sugiyama(4, [(0, 1), (1, 2), (3, 2)], data_nodes=(3,))
        for n in g.nodes:
            n.rank = 0
        g.nodes[1].rank, g.nodes[2].rank = 1, 3
        split_long_edges(g)
        dummies = [n for n in g.nodes if n.is_dummy]
        assert len(dummies) == 3
        assert sum(1 for d in dummies if d.has_exec_pins) == 1
        assert sum(1 for d in dummies if d.exec_input_pins == 0) == 2


# ─── Full Pipeline ────────────────────────────────────────────────────────────


class TestRunSugiyama:
    def test_no_long_edges_and_valid_orders(self):
        g = make_sugiyama(6, [(0, 1), (1, 2), (2, 3), (0, 3), (4, 3), (1, 5)], data_nodes=(4,))
        max_rank, rank_nodes = run_sugiyama(g, sweeps=4)
        for e in g.edges:
            assert 0 <= g.nodes[e.dst].rank - g.nodes[e.src].rank <= 1
        for rank, members in enumerate(rank_nodes):
            assert sorted(g.nodes[i].order for i in members) == list(range(len(members)))
            assert all(g.nodes[i].rank == rank for i in members)
        assert max_rank == max(ranks(g))

    def test_deterministic(self):
        edges = [(0, 1), (1, 2), (2, 0), (0, 3), (3, 4), (1, 4)]
        a, b = make_sugiyama(5, edges), make_sugiyama(5, edges)
        run_sugiyama(a, sweeps=8)
        run_sugiyama(b, sweeps=8)
        assert [(n.key, n.rank, n.order) for n in a.nodes] == [(n.key, n.rank, n.order) for n in b.nodes]
