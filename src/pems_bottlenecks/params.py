from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

READING_COLUMNS = ("timestamp", "station", "abs_pm", "speed")


class BottleneckParams(BaseModel):
    """Tunables for the speed-differential bottleneck search.

    Attributes
    ----------
    min_speed : float
        Readings slower than this (mph) seed a search.
    max_distance : float
        Search window in miles from the seed; the walk stops at the first
        station beyond it.
    mph_trigger : float
        A candidate must be faster than the seed by more than this (mph).
    direction : bool
        True walks toward increasing postmile, False toward decreasing.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_speed: float = Field(default=40.0, gt=0)
    max_distance: float = Field(default=1.0, gt=0)
    mph_trigger: float = Field(default=20.0, ge=0)
    direction: bool = True


__all__ = ["BottleneckParams", "READING_COLUMNS"]
