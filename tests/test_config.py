"""Tests for config.py — LayoutSettings defaults, env overrides and bounds."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dag_grid.config import LayoutSettings


class TestLayoutSettings:
    def test_defaults(self):
        """No overrides — documented default bounds."""
        settings = LayoutSettings()
        assert settings.adjacent_col_offsets == 3
        assert settings.row_offsets == 3
        assert settings.search_radius == 10
        assert settings.max_anchor_shift == 2
        assert settings.disconnected_row_gap == 2
        assert settings.validate_after_mutation is True
        assert settings.dump_position_map is False

    def test_env_prefix(self, monkeypatch):
        """DAG_GRID_ environment variables — picked up."""
        monkeypatch.setenv("DAG_GRID_SEARCH_RADIUS", "4")
        monkeypatch.setenv("DAG_GRID_DUMP_POSITION_MAP", "true")
        settings = LayoutSettings()
        assert settings.search_radius == 4
        assert settings.dump_position_map is True

    def test_unprefixed_env_ignored(self, monkeypatch):
        """Unprefixed variable — ignored."""
        monkeypatch.setenv("SEARCH_RADIUS", "4")
        assert LayoutSettings().search_radius == 10

    @pytest.mark.parametrize(
        "field, value",
        [
            ("adjacent_col_offsets", 0),
            ("adjacent_col_offsets", 4),
            ("row_offsets", 4),
            ("search_radius", 0),
            ("search_radius", 11),
            ("max_anchor_shift", 0),
            ("max_anchor_shift", 3),
            ("disconnected_row_gap", 0),
        ],
    )
    def test_bounds_rejected(self, field, value):
        """Out-of-range search bounds — ValidationError."""
        with pytest.raises(ValidationError):
            LayoutSettings(**{field: value})

    def test_explicit_values(self):
        """Constructor arguments — override defaults."""
        settings = LayoutSettings(adjacent_col_offsets=1, row_offsets=1, search_radius=1)
        assert (settings.adjacent_col_offsets, settings.row_offsets, settings.search_radius) == (1, 1, 1)

    def test_upper_bounds_accepted(self):
        """Largest allowed bounds — offsets 3, radius 10, shift 2."""
        settings = LayoutSettings(adjacent_col_offsets=3, row_offsets=3, search_radius=10, max_anchor_shift=2)
        assert settings.search_radius == 10
