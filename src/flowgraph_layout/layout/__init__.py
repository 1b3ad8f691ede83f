"""Layered layout pipeline and public API."""

from __future__ import annotations

from flowgraph_layout.layout.crossing import (
    apply_zero_gap_ordering,
    assign_initial_order,
    count_crossings,
    run_crossing_reduction,
)
from flowgraph_layout.layout.engine import layout_component
from flowgraph_layout.layout.placement import (
    aligned_x,
    compute_anchor_offset,
    compute_columns,
    place_compact,
    place_simple,
    select_anchor,
)
from flowgraph_layout.layout.sugiyama import (
    apply_edge_directions,
    assign_layers,
    pad_exec_tails,
    remove_cycles,
    run_sugiyama,
    split_long_edges,
)
from flowgraph_layout.layout.types import (
    Bounds,
    LayoutComponentResult,
    LayoutError,
    LayoutErrorKind,
    SugiyamaEdge,
    SugiyamaGraph,
    SugiyamaNode,
    Vec2,
)
from flowgraph_layout.layout.work import (
    build_sugiyama_graph,
    build_work_edges,
    build_work_nodes,
)

__all__ = [
    "Bounds",
    "LayoutComponentResult",
    "LayoutError",
    "LayoutErrorKind",
    "SugiyamaEdge",
    "SugiyamaGraph",
    "SugiyamaNode",
    "Vec2",
    "aligned_x",
    "apply_edge_directions",
    "apply_zero_gap_ordering",
    "assign_initial_order",
    "assign_layers",
    "build_sugiyama_graph",
    "build_work_edges",
    "build_work_nodes",
    "compute_anchor_offset",
    "compute_columns",
    "count_crossings",
    "layout_component",
    "pad_exec_tails",
    "place_compact",
    "place_simple",
    "remove_cycles",
    "run_crossing_reduction",
    "run_sugiyama",
    "select_anchor",
    "split_long_edges",
]
