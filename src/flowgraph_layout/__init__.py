"""flowgraph-layout: deterministic layered layout for exec/data node graphs."""

from flowgraph_layout.analysis import cyclomatic_complexity, cyclomatic_complexity_for_selection
from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.graph import LayoutEdge, LayoutGraph, LayoutNode
from flowgraph_layout.ir.keys import NodeKey, PinKey
from flowgraph_layout.islands import IslandLayoutResult, NodeSizeCache, find_components, layout_islands
from flowgraph_layout.layout.engine import layout_component
from flowgraph_layout.layout.types import LayoutComponentResult, LayoutError, LayoutErrorKind, Vec2
from flowgraph_layout.types import EdgeKind, PinDirection, PlacementStrategy, RankAlignment


def layout_json(text: str, settings: LayoutSettings | None = None, selected_ids=None) -> dict:
    """Lay out a JSON graph document and return the CLI's JSON-ready result.

    Raises ValueError on malformed input or when the layout fails.
    """
    graph = LayoutGraph.loads(text)
    result = layout_islands(graph, selected_ids, settings)
    if not result:
        raise ValueError(f"{result.error} {result.guidance}".strip())
    return result.to_dict()


__all__ = [
    "EdgeKind",
    "IslandLayoutResult",
    "LayoutComponentResult",
    "LayoutEdge",
    "LayoutError",
    "LayoutErrorKind",
    "LayoutGraph",
    "LayoutNode",
    "LayoutSettings",
    "NodeKey",
    "NodeSizeCache",
    "PinDirection",
    "PinKey",
    "PlacementStrategy",
    "RankAlignment",
    "Vec2",
    "cyclomatic_complexity",
    "cyclomatic_complexity_for_selection",
    "find_components",
    "layout_component",
    "layout_islands",
    "layout_json",
]
