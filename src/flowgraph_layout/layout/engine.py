"""Component orchestrator: one connected component in, positions out."""

from __future__ import annotations

import logging
from typing import Iterable

from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.graph import LayoutGraph
from flowgraph_layout.layout.placement import compute_anchor_offset, place, select_anchor
from flowgraph_layout.layout.sugiyama import run_sugiyama
from flowgraph_layout.layout.types import (
    LayoutComponentResult,
    LayoutError,
    LayoutErrorKind,
    SugiyamaGraph,
    WorkNode,
)
from flowgraph_layout.layout.work import (
    build_sugiyama_graph,
    build_work_edges,
    build_work_nodes,
    single_node_result,
)

logger = logging.getLogger(__name__)


def layout_component(
    graph: LayoutGraph,
    component_ids: Iterable[int],
    settings: LayoutSettings | None = None,
    label: str = "Component",
) -> LayoutComponentResult:
    """Lay out the nodes of one component of ``graph``.

    The graph is never mutated. Failures come back as a result with
    ``success`` False rather than as an exception.
    """
    settings = (settings or LayoutSettings()).normalized()
    try:
        return _layout_component(graph, list(component_ids), settings, label)
    except LayoutError as e:
        logger.debug("Layout[%s] failed: %s", label, e)
        return LayoutComponentResult.failure(e)


def _layout_component(
    graph: LayoutGraph, component_ids: list[int], settings: LayoutSettings, label: str
) -> LayoutComponentResult:
    if not component_ids:
        raise LayoutError(LayoutErrorKind.EMPTY_COMPONENT, "Layout component has no nodes.")

    nodes, id_to_index = build_work_nodes(graph, component_ids)
    solo = single_node_result(nodes)
    if solo is not None:
        logger.debug("Layout[%s] single node %d keeps its position", label, nodes[0].graph_id)
        return solo

    edges = build_work_edges(graph, nodes, id_to_index)
    sugiyama = build_sugiyama_graph(nodes, edges, settings)
    run_sugiyama(sugiyama, settings.sweeps, label)

    apply_sugiyama_ranks(sugiyama, nodes)
    placement = place(nodes, edges, settings)
    anchor_index = select_anchor(nodes)
    offset = compute_anchor_offset(nodes, placement, anchor_index)
    return _build_result(nodes, placement.positions, offset, anchor_index, label)


def apply_sugiyama_ranks(sugiyama: SugiyamaGraph, nodes: list[WorkNode]) -> None:
    """Copy rank and order of real Sugiyama nodes back onto their work nodes, clamped at 0."""
    for node in sugiyama.nodes:
        if node.is_dummy or node.source_index is None:
            continue
        work = nodes[node.source_index]
        work.global_rank = max(0, node.rank)
        work.global_order = max(0, node.order)


def _build_result(nodes: list[WorkNode], positions, offset, anchor_index: int | None, label: str) -> LayoutComponentResult:
    result = LayoutComponentResult()
    if anchor_index is not None:
        result.anchor_id = nodes[anchor_index].graph_id
    for node in nodes:
        position = positions[node.local_index] + offset
        result.positions[node.graph_id] = position
        result.ranks[node.graph_id] = node.global_rank
        result.orders[node.graph_id] = node.global_order
        result.bounds.include(position, node.size)

    logger.debug(
        "Layout[%s] done: nodes=%d anchor=%s offset=(%.1f,%.1f)",
        label,
        len(nodes),
        result.anchor_id,
        offset.x,
        offset.y,
    )
    return result
