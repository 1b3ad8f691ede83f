"""Intermediate representation: stable keys and the host-supplied layout graph."""

from flowgraph_layout.ir.graph import LayoutEdge, LayoutGraph, LayoutNode
from flowgraph_layout.ir.keys import NodeKey, PinKey

__all__ = [
    "LayoutEdge",
    "LayoutGraph",
    "LayoutNode",
    "NodeKey",
    "PinKey",
]
