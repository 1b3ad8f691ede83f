"""Shared type definitions for flowgraph-layout.

Enums used across the graph IR, the layout pipeline, and the CLI.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class EdgeKind(Enum):
    EXEC = "exec"  # control flow between two exec pins
    DATA = "data"  # value dependency

    @classmethod
    def parse(cls, value: str) -> EdgeKind:
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown edge kind '{value}'; use exec or data") from None


class PinDirection(IntEnum):
    INPUT = 0
    OUTPUT = 1

    @property
    def label(self) -> str:
        return "I" if self is PinDirection.INPUT else "O"


class RankAlignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @classmethod
    def default(cls) -> RankAlignment:
        return cls.CENTER


class PlacementStrategy(Enum):
    SIMPLE = "simple"
    COMPACT = "compact"

    @classmethod
    def default(cls) -> PlacementStrategy:
        return cls.COMPACT
