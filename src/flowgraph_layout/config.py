"""Centralized configuration for flowgraph-layout."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from flowgraph_layout.types import PlacementStrategy, RankAlignment

DEFAULT_NODE_SPACING_X: float = 300.0
DEFAULT_NODE_SPACING_Y: float = 60.0
DEFAULT_VARIABLE_GET_MIN_LENGTH: int = 1
DEFAULT_SWEEPS: int = 8

_ENV_PREFIX = "FLOWGRAPH_LAYOUT_"


@dataclass
class LayoutSettings:
    """Spacing and policy knobs for one layout call.

    Spacing values are in the caller's coordinate units. Negative values are
    clamped to zero by ``normalized()``, which the engine always applies.
    """

    exec_spacing_x: float = DEFAULT_NODE_SPACING_X
    data_spacing_x: float = DEFAULT_NODE_SPACING_X
    exec_spacing_y: float = DEFAULT_NODE_SPACING_Y
    data_spacing_y: float = DEFAULT_NODE_SPACING_Y
    variable_get_min_length: int = DEFAULT_VARIABLE_GET_MIN_LENGTH
    rank_alignment: RankAlignment = RankAlignment.CENTER
    prefer_horizontal_exec: bool = True
    placement: PlacementStrategy = PlacementStrategy.COMPACT
    sweeps: int = DEFAULT_SWEEPS

    def normalized(self) -> LayoutSettings:
        return replace(
            self,
            exec_spacing_x=max(0.0, float(self.exec_spacing_x)),
            data_spacing_x=max(0.0, float(self.data_spacing_x)),
            exec_spacing_y=max(0.0, float(self.exec_spacing_y)),
            data_spacing_y=max(0.0, float(self.data_spacing_y)),
            variable_get_min_length=max(0, int(self.variable_get_min_length)),
            sweeps=max(0, int(self.sweeps)),
        )

    @property
    def combined_spacing_x(self) -> float:
        return max(self.exec_spacing_x, self.data_spacing_x)

    def spacing_y_for(self, has_exec_pins: bool) -> float:
        return self.exec_spacing_y if has_exec_pins else self.data_spacing_y

    def spacing_x_for(self, has_exec_pins: bool) -> float:
        return self.exec_spacing_x if has_exec_pins else self.data_spacing_x

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LayoutSettings:
        """Build settings from a plain mapping, ignoring unknown keys.

        ``spacing_x`` / ``spacing_y`` set both kinds at once; the per-kind
        keys win when both are given.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        if "spacing_x" in data:
            values["exec_spacing_x"] = values["data_spacing_x"] = float(data["spacing_x"])
        if "spacing_y" in data:
            values["exec_spacing_y"] = values["data_spacing_y"] = float(data["spacing_y"])
        for key, value in data.items():
            if key not in known:
                continue
            if key == "rank_alignment" and isinstance(value, str):
                value = _parse_enum(RankAlignment, value)
            elif key == "placement" and isinstance(value, str):
                value = _parse_enum(PlacementStrategy, value)
            values[key] = value
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LayoutSettings:
        """Read overrides from ``FLOWGRAPH_LAYOUT_*`` environment variables."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        if f"{_ENV_PREFIX}SPACING_X" in env:
            data["spacing_x"] = env[f"{_ENV_PREFIX}SPACING_X"]
        if f"{_ENV_PREFIX}SPACING_Y_EXEC" in env:
            data["exec_spacing_y"] = float(env[f"{_ENV_PREFIX}SPACING_Y_EXEC"])
        if f"{_ENV_PREFIX}SPACING_Y_DATA" in env:
            data["data_spacing_y"] = float(env[f"{_ENV_PREFIX}SPACING_Y_DATA"])
        if f"{_ENV_PREFIX}ALIGNMENT" in env:
            data["rank_alignment"] = env[f"{_ENV_PREFIX}ALIGNMENT"]
        if f"{_ENV_PREFIX}PLACEMENT" in env:
            data["placement"] = env[f"{_ENV_PREFIX}PLACEMENT"]
        return cls.from_dict(data)


def _parse_enum(enum_cls, value: str):
    try:
        return enum_cls(value.lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Unknown {enum_cls.__name__} '{value}'; use one of: {choices}") from None
