"""Engine configuration via environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class LayoutSettings(BaseSettings):
    """Search bounds and diagnostics switches for the placement engine.

    Every solver strategy is bounded by these values, so the work done per
    insertion stays finite.
    """

    adjacent_col_offsets: int = Field(default=3, ge=1, le=3)
    row_offsets: int = Field(default=3, ge=1, le=3)
    search_radius: int = Field(default=10, ge=1, le=10)
    max_anchor_shift: int = Field(default=2, ge=1, le=2)
    disconnected_row_gap: int = Field(default=2, ge=1)
    validate_after_mutation: bool = True
    dump_position_map: bool = False

    model_config = {"env_prefix": "DAG_GRID_"}


settings = LayoutSettings()
