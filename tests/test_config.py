"""Tests for config.py: LayoutSettings defaults, normalisation, dict/env loading."""

from __future__ import annotations

import pytest

from flowgraph_layout.config import (
    DEFAULT_NODE_SPACING_X,
    DEFAULT_NODE_SPACING_Y,
    LayoutSettings,
)
from flowgraph_layout.types import PlacementStrategy, RankAlignment


class TestDefaults:
    def test_values(self):
        s = LayoutSettings()
        assert s.exec_spacing_x == s.data_spacing_x == DEFAULT_NODE_SPACING_X == 300.0
        assert s.exec_spacing_y == s.data_spacing_y == DEFAULT_NODE_SPACING_Y == 60.0
        assert s.variable_get_min_length == 1
        assert s.rank_alignment is RankAlignment.CENTER
        assert s.placement is PlacementStrategy.COMPACT
        assert s.prefer_horizontal_exec is True
        assert s.sweeps == 8

    def test_per_kind_helpers(self):
        s = LayoutSettings(exec_spacing_x=10, data_spacing_x=20, exec_spacing_y=1, data_spacing_y=2)
        assert s.spacing_x_for(True) == 10
        assert s.spacing_x_for(False) == 20
        assert s.spacing_y_for(True) == 1
        assert s.spacing_y_for(False) == 2
        assert s.combined_spacing_x == 20


class TestNormalized:
    def test_negatives_clamped(self):
        s = LayoutSettings(exec_spacing_x=-1, data_spacing_y=-5, variable_get_min_length=-2, sweeps=-1).normalized()
        assert s.exec_spacing_x == 0.0
        assert s.data_spacing_y == 0.0
        assert s.variable_get_min_length == 0
        assert s.sweeps == 0

    def test_original_untouched(self):
        s = LayoutSettings(exec_spacing_x=-1)
        s.normalized()
        assert s.exec_spacing_x == -1


class TestLoading:
    def test_from_dict_shortcuts(self):
        s = LayoutSettings.from_dict({"spacing_x": 120, "spacing_y": 30, "data_spacing_y": 45})
        assert s.exec_spacing_x == s.data_spacing_x == 120.0
        assert s.exec_spacing_y == 30.0
        assert s.data_spacing_y == 45

    def test_from_dict_enums(self):
        s = LayoutSettings.from_dict({"rank_alignment": "Left", "placement": "simple", "unknown": 1})
        assert s.rank_alignment is RankAlignment.LEFT
        assert s.placement is PlacementStrategy.SIMPLE

    def test_from_dict_bad_enum(self):
        with pytest.raises(ValueError, match="RankAlignment"):
            LayoutSettings.from_dict({"rank_alignment": "diagonal"})

    def test_from_env(self):
        env = {
            "FLOWGRAPH_LAYOUT_SPACING_X": "250",
            "FLOWGRAPH_LAYOUT_SPACING_Y_EXEC": "40",
            "FLOWGRAPH_LAYOUT_SPACING_Y_DATA": "20",
            "FLOWGRAPH_LAYOUT_ALIGNMENT": "right",
            "FLOWGRAPH_LAYOUT_PLACEMENT": "simple",
        }
        s = LayoutSettings.from_env(env)
        assert s.exec_spacing_x == s.data_spacing_x == 250.0
        assert s.exec_spacing_y == 40.0
        assert s.data_spacing_y == 20.0
        assert s.rank_alignment is RankAlignment.RIGHT
        assert s.placement is PlacementStrategy.SIMPLE

    def test_from_empty_env(self):
        assert LayoutSettings.from_env({}) == LayoutSettings()
