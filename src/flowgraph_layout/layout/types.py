"""Layout types shared across the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from flowgraph_layout.ir.keys import NodeKey, PinKey
from flowgraph_layout.types import EdgeKind


@dataclass(frozen=True)
class Vec2:
    """A 2D point or extent in the caller's coordinate space."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)


@dataclass
class Bounds:
    """Axis-aligned box; ``None`` corners mean nothing has been added yet."""

    min: Vec2 | None = None
    max: Vec2 | None = None

    @property
    def is_valid(self) -> bool:
        return self.min is not None and self.max is not None

    def include(self, top_left: Vec2, size: Vec2) -> None:
        bottom_right = top_left + size
        if self.min is None or self.max is None:
            self.min, self.max = top_left, bottom_right
            return
        self.min = Vec2(min(self.min.x, top_left.x), min(self.min.y, top_left.y))
        self.max = Vec2(max(self.max.x, bottom_right.x), max(self.max.y, bottom_right.y))


# ─── Working copy ────────────────────────────────────────────────────────────


@dataclass
class WorkNode:
    """Component-local copy of a LayoutNode; never aliases caller data."""

    local_index: int
    graph_id: int
    key: NodeKey
    name: str
    size: Vec2
    original_position: Vec2
    has_exec_pins: bool = False
    is_variable_get: bool = False
    input_pins: int = 0
    exec_input_pins: int = 0
    output_pins: int = 0
    exec_output_pins: int = 0
    global_rank: int = 0
    global_order: int = 0


@dataclass
class WorkEdge:
    src: int
    dst: int
    kind: EdgeKind
    src_pin_index: int
    dst_pin_index: int
    src_pin_name: str
    dst_pin_name: str
    src_pin_key: PinKey
    dst_pin_key: PinKey
    stable_key: str


# ─── Sugiyama arena ──────────────────────────────────────────────────────────


@dataclass
class SugiyamaNode:
    id: int
    key: NodeKey
    name: str = ""
    output_pins: int = 0
    input_pins: int = 0
    exec_output_pins: int = 0
    exec_input_pins: int = 0
    has_exec_pins: bool = False
    is_variable_get: bool = False
    size: Vec2 = field(default_factory=Vec2)
    rank: int = 0
    order: int = 0
    is_dummy: bool = False
    source_index: int | None = None


@dataclass
class SugiyamaEdge:
    src: int
    dst: int
    src_pin: PinKey
    dst_pin: PinKey
    src_pin_index: int = 0
    dst_pin_index: int = 0
    kind: EdgeKind = EdgeKind.DATA
    stable_key: str = ""
    min_len: int = 1
    reversed: bool = False

    @property
    def effective_src(self) -> int:
        return self.dst if self.reversed else self.src

    @property
    def effective_dst(self) -> int:
        return self.src if self.reversed else self.dst

    @property
    def effective_src_pin(self) -> PinKey:
        return self.dst_pin if self.reversed else self.src_pin

    @property
    def effective_dst_pin(self) -> PinKey:
        return self.src_pin if self.reversed else self.dst_pin


@dataclass
class SugiyamaGraph:
    nodes: list[SugiyamaNode] = field(default_factory=list)
    edges: list[SugiyamaEdge] = field(default_factory=list)

    def dummy_count(self) -> int:
        return sum(1 for node in self.nodes if node.is_dummy)


# ─── Results and errors ──────────────────────────────────────────────────────


@dataclass
class GlobalPlacement:
    """Positions keyed by local node index, before the anchor offset."""

    positions: dict[int, Vec2] = field(default_factory=dict)
    anchor_index: int | None = None


class LayoutErrorKind(Enum):
    EMPTY_COMPONENT = auto()
    MISSING_NODE = auto()


class LayoutError(ValueError):
    def __init__(self, kind: LayoutErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class LayoutComponentResult:
    """Outcome of laying out one component.

    On failure ``success`` is False, ``error``/``error_kind`` describe why, and
    every output collection is empty.
    """

    positions: dict[int, Vec2] = field(default_factory=dict)
    bounds: Bounds = field(default_factory=Bounds)
    ranks: dict[int, int] = field(default_factory=dict)
    orders: dict[int, int] = field(default_factory=dict)
    anchor_id: int | None = None
    success: bool = True
    error: str | None = None
    error_kind: LayoutErrorKind | None = None

    @classmethod
    def failure(cls, error: LayoutError) -> LayoutComponentResult:
        return cls(success=False, error=str(error), error_kind=error.kind)

    def __bool__(self) -> bool:
        return self.success
