"""Coordinate assignment: rank/order -> top-left positions.

X comes from per-rank columns. Y comes from one of two strategies:

- ``place_simple`` stacks each rank top-down.
- ``place_compact`` relaxes ``y[target] >= y[source] + delta`` constraints so
  single-consumer getters and linear exec chains line up horizontally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.keys import node_key_sort_key
from flowgraph_layout.layout.types import GlobalPlacement, Vec2, WorkEdge, WorkNode
from flowgraph_layout.layout.work import single_consumer_targets
from flowgraph_layout.types import EdgeKind, PlacementStrategy, RankAlignment

logger = logging.getLogger(__name__)

COMPACT_EPSILON: float = 1e-4
MIN_COMPACT_ITERATIONS: int = 3


@dataclass
class Columns:
    """Left edge and width of every rank column."""

    x_left: list[float]
    width: list[float]


@dataclass(frozen=True)
class PlacementConstraint:
    source: int
    target: int
    delta: float


def _rank_groups(nodes: list[WorkNode]) -> list[list[WorkNode]]:
    if not nodes:
        return []
    max_rank = max(node.global_rank for node in nodes)
    groups: list[list[WorkNode]] = [[] for _ in range(max_rank + 1)]
    for node in nodes:
        groups[node.global_rank].append(node)
    for group in groups:
        group.sort(key=lambda n: (n.global_order, node_key_sort_key(n.key)))
    return groups


def compute_columns(nodes: list[WorkNode], settings: LayoutSettings) -> Columns:
    """Column width = widest node; gap after a rank = its widest per-kind spacing."""
    groups = _rank_groups(nodes)
    widths: list[float] = []
    gaps: list[float] = []
    for group in groups:
        widths.append(max((node.size.x for node in group), default=0.0))
        if group:
            gaps.append(max(settings.spacing_x_for(node.has_exec_pins) for node in group))
        else:
            gaps.append(settings.combined_spacing_x)

    x_left: list[float] = []
    x = 0.0
    for width, gap in zip(widths, gaps):
        x_left.append(x)
        x += width + gap
    return Columns(x_left=x_left, width=widths)


def aligned_x(column_left: float, column_width: float, node_width: float, alignment: RankAlignment) -> float:
    if alignment is RankAlignment.LEFT:
        return column_left
    if alignment is RankAlignment.RIGHT:
        return column_left + column_width - node_width
    return column_left + (column_width - node_width) * 0.5


def _node_x(node: WorkNode, columns: Columns, settings: LayoutSettings) -> float:
    rank = node.global_rank
    return aligned_x(columns.x_left[rank], columns.width[rank], node.size.x, settings.rank_alignment)


# ─── Simple ──────────────────────────────────────────────────────────────────


def place_simple(nodes: list[WorkNode], settings: LayoutSettings) -> GlobalPlacement:
    """Stack every rank top-down in order."""
    settings = settings.normalized()
    columns = compute_columns(nodes, settings)
    placement = GlobalPlacement()
    for group in _rank_groups(nodes):
        y = 0.0
        prev: WorkNode | None = None
        for node in group:
            if prev is not None:
                y += prev.size.y + settings.spacing_y_for(node.has_exec_pins)
            placement.positions[node.local_index] = Vec2(_node_x(node, columns, settings), y)
            prev = node
    return placement


# ─── Compact ─────────────────────────────────────────────────────────────────


def build_compact_constraints(
    nodes: list[WorkNode], edges: list[WorkEdge], settings: LayoutSettings
) -> list[PlacementConstraint]:
    constraints: list[PlacementConstraint] = []

    for group in _rank_groups(nodes):
        for prev, node in zip(group, group[1:]):
            delta = prev.size.y + settings.spacing_y_for(node.has_exec_pins)
            constraints.append(PlacementConstraint(prev.local_index, node.local_index, delta))

    # Getter sits level with its only consumer; the lowest input pin picks the edge.
    for producer, consumer in sorted(single_consumer_targets(nodes, edges).items()):
        candidates = [e for e in edges if e.src == producer and e.dst == consumer]
        best = min(candidates, key=lambda e: (e.dst_pin_index, e.stable_key))
        constraints.append(PlacementConstraint(best.dst, best.src, 0.0))

    if settings.prefer_horizontal_exec:
        incoming: dict[int, list[WorkEdge]] = {}
        for edge in edges:
            if edge.kind is EdgeKind.EXEC:
                incoming.setdefault(edge.dst, []).append(edge)
        for dst in sorted(incoming):
            if len(incoming[dst]) == 1:
                constraints.append(PlacementConstraint(incoming[dst][0].src, dst, 0.0))

    return constraints


def place_compact(nodes: list[WorkNode], edges: list[WorkEdge], settings: LayoutSettings) -> GlobalPlacement:
    """Relax vertical constraints from y = 0; bounded rounds, warning on non-convergence."""
    settings = settings.normalized()
    columns = compute_columns(nodes, settings)
    constraints = build_compact_constraints(nodes, edges, settings)

    y = [0.0] * len(nodes)
    max_iterations = max(MIN_COMPACT_ITERATIONS, len(nodes))
    converged = False
    for _ in range(max_iterations):
        changed = False
        for constraint in constraints:
            required = y[constraint.source] + constraint.delta
            if y[constraint.target] + COMPACT_EPSILON < required:
                y[constraint.target] = required
                changed = True
        if not changed:
            converged = True
            break

    if not converged:
        logger.warning(
            "Compact placement did not converge after %d iterations (nodes=%d constraints=%d)",
            max_iterations,
            len(nodes),
            len(constraints),
        )

    placement = GlobalPlacement()
    for node in nodes:
        placement.positions[node.local_index] = Vec2(_node_x(node, columns, settings), y[node.local_index])
    return placement


def place(nodes: list[WorkNode], edges: list[WorkEdge], settings: LayoutSettings) -> GlobalPlacement:
    if settings.placement is PlacementStrategy.SIMPLE:
        return place_simple(nodes, settings)
    return place_compact(nodes, edges, settings)


# ─── Anchor ──────────────────────────────────────────────────────────────────


def select_anchor(nodes: list[WorkNode]) -> int | None:
    """Prefer the first node of rank 0; exec nodes win, then key, then index."""
    if not nodes:
        return None

    def priority(node: WorkNode) -> tuple:
        return (0 if node.has_exec_pins else 1, node_key_sort_key(node.key), node.local_index)

    leading = [n for n in nodes if n.global_rank == 0 and n.global_order == 0]
    return min(leading or nodes, key=priority).local_index


def compute_anchor_offset(nodes: list[WorkNode], placement: GlobalPlacement, anchor_index: int | None) -> Vec2:
    if anchor_index is None or anchor_index not in placement.positions:
        return Vec2()
    return nodes[anchor_index].original_position - placement.positions[anchor_index]
