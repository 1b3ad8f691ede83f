"""Working-graph builder: component-local, zero-based copies of the input."""

from __future__ import annotations

import logging

from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.graph import LayoutGraph
from flowgraph_layout.ir.keys import build_edge_stable_key, make_pin_key
from flowgraph_layout.layout.types import (
    LayoutComponentResult,
    LayoutError,
    LayoutErrorKind,
    SugiyamaEdge,
    SugiyamaGraph,
    SugiyamaNode,
    Vec2,
    WorkEdge,
    WorkNode,
)
from flowgraph_layout.types import EdgeKind, PinDirection

logger = logging.getLogger(__name__)

VERBOSE_NODE_LIMIT: int = 120
VERBOSE_EDGE_LIMIT: int = 240


def should_dump_detail(node_count: int, edge_count: int) -> bool:
    return node_count <= VERBOSE_NODE_LIMIT and edge_count <= VERBOSE_EDGE_LIMIT


def build_work_nodes(graph: LayoutGraph, component_ids: list[int]) -> tuple[list[WorkNode], dict[int, int]]:
    """Resolve the component's ids into WorkNodes ordered by id.

    Raises LayoutError(MISSING_NODE) if an id is not in ``graph``.
    """
    by_id = {node.id: node for node in graph.nodes}
    nodes: list[WorkNode] = []
    id_to_index: dict[int, int] = {}

    for node_id in sorted(set(component_ids)):
        source = by_id.get(node_id)
        if source is None:
            raise LayoutError(LayoutErrorKind.MISSING_NODE, f"Layout node id {node_id} is missing from the graph.")
        node = WorkNode(
            local_index=len(nodes),
            graph_id=source.id,
            key=source.key,
            name=source.name,
            size=Vec2(max(0.0, source.width), max(0.0, source.height)),
            original_position=Vec2(source.x, source.y),
            has_exec_pins=source.has_exec_pins,
            is_variable_get=source.is_variable_get,
            input_pins=max(0, source.input_pins),
            exec_input_pins=max(0, source.exec_input_pins),
            output_pins=max(0, source.output_pins),
            exec_output_pins=max(0, source.exec_output_pins),
        )
        id_to_index[node.graph_id] = node.local_index
        nodes.append(node)

    if len(nodes) <= VERBOSE_NODE_LIMIT:
        for node in nodes:
            logger.debug(
                "WorkNode id=%d key=%s size=(%.1f,%.1f) pos=(%.1f,%.1f) exec=%d execIn=%d execOut=%d in=%d out=%d",
                node.graph_id,
                node.key,
                node.size.x,
                node.size.y,
                node.original_position.x,
                node.original_position.y,
                node.has_exec_pins,
                node.exec_input_pins,
                node.exec_output_pins,
                node.input_pins,
                node.output_pins,
            )
    return nodes, id_to_index


def single_node_result(nodes: list[WorkNode]) -> LayoutComponentResult | None:
    """A lone node keeps its original position; no ranking is needed."""
    if len(nodes) != 1:
        return None
    solo = nodes[0]
    result = LayoutComponentResult(anchor_id=solo.graph_id)
    result.positions[solo.graph_id] = solo.original_position
    result.ranks[solo.graph_id] = 0
    result.orders[solo.graph_id] = 0
    result.bounds.include(solo.original_position, solo.size)
    return result


def build_work_edges(graph: LayoutGraph, nodes: list[WorkNode], id_to_index: dict[int, int]) -> list[WorkEdge]:
    """Keep edges inside the component, re-keyed to local indices and sorted by stable key."""
    edges: list[WorkEdge] = []
    for edge in graph.edges:
        src = id_to_index.get(edge.src)
        dst = id_to_index.get(edge.dst)
        if src is None or dst is None or src == dst:
            continue
        src_pin_index = max(0, edge.src_pin_index)
        dst_pin_index = max(0, edge.dst_pin_index)
        src_pin_key = make_pin_key(nodes[src].key, PinDirection.OUTPUT, edge.src_pin, src_pin_index)
        dst_pin_key = make_pin_key(nodes[dst].key, PinDirection.INPUT, edge.dst_pin, dst_pin_index)
        edges.append(
            WorkEdge(
                src=src,
                dst=dst,
                kind=edge.kind,
                src_pin_index=src_pin_index,
                dst_pin_index=dst_pin_index,
                src_pin_name=edge.src_pin,
                dst_pin_name=edge.dst_pin,
                src_pin_key=src_pin_key,
                dst_pin_key=dst_pin_key,
                stable_key=build_edge_stable_key(src_pin_key, dst_pin_key),
            )
        )

    edges.sort(key=lambda e: (e.stable_key, e.src, e.dst, e.src_pin_index))

    if should_dump_detail(len(nodes), len(edges)):
        for index, edge in enumerate(edges):
            logger.debug(
                "WorkEdge[%d] %s %d -> %d stable=%s",
                index,
                edge.kind.value,
                nodes[edge.src].graph_id,
                nodes[edge.dst].graph_id,
                edge.stable_key,
            )
    exec_count = sum(1 for e in edges if e.kind is EdgeKind.EXEC)
    logger.debug("WorkGraph: nodes=%d edges=%d exec=%d data=%d", len(nodes), len(edges), exec_count, len(edges) - exec_count)
    return edges


def single_consumer_targets(nodes: list[WorkNode], edges: list[WorkEdge]) -> dict[int, int]:
    """Map each variable-get producer with exactly one distinct consumer to that consumer."""
    consumers: dict[int, set[int]] = {}
    for edge in edges:
        if nodes[edge.src].is_variable_get:
            consumers.setdefault(edge.src, set()).add(edge.dst)
    return {src: next(iter(dsts)) for src, dsts in consumers.items() if len(dsts) == 1}


def build_sugiyama_graph(nodes: list[WorkNode], edges: list[WorkEdge], settings: LayoutSettings) -> SugiyamaGraph:
    """Convert the working copy into the Sugiyama arena and assign per-edge min_len."""
    graph = SugiyamaGraph()
    for index, work in enumerate(nodes):
        graph.nodes.append(
            SugiyamaNode(
                id=index,
                key=work.key,
                name=work.name,
                output_pins=work.output_pins,
                input_pins=work.input_pins,
                exec_output_pins=work.exec_output_pins,
                exec_input_pins=work.exec_input_pins,
                has_exec_pins=work.has_exec_pins,
                is_variable_get=work.is_variable_get,
                size=work.size,
                source_index=index,
            )
        )

    producers = single_consumer_targets(nodes, edges)
    producer_min_len = max(0, settings.variable_get_min_length)
    for edge in edges:
        graph.edges.append(
            SugiyamaEdge(
                src=edge.src,
                dst=edge.dst,
                src_pin=edge.src_pin_key,
                dst_pin=edge.dst_pin_key,
                src_pin_index=edge.src_pin_index,
                dst_pin_index=edge.dst_pin_index,
                kind=edge.kind,
                stable_key=edge.stable_key,
                min_len=producer_min_len if edge.src in producers else 1,
            )
        )
    return graph
