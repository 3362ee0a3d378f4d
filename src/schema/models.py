from __future__ import annotations
from typing import Literal, Optional
from datetime import datetime
import math
from pydantic import BaseModel, Field, ConfigDict, field_validator
from dateutil import parser as dateparser


def _parse_local(ts: str | datetime) -> datetime:
    """PeMS timestamps are local (Pacific) wall-clock times; keep them naive."""
    if isinstance(ts, datetime):
        dt = ts
    else:
        dt = dateparser.parse(str(ts))
    if dt.tzinfo is not None:
        dt = dt.replace(tzinfo=None)
    return dt


def _blank(v) -> bool:
    if v is None:
        return True
    if isinstance(v, float) and math.isnan(v):
        return True
    return isinstance(v, str) and v.strip().lower() in ("", "nan", "none")


def _station_id(v) -> str:
    # Spreadsheets turn 400001 into 400001.0
    s = str(v).strip()
    if s.endswith(".0") and s[:-2].isdigit():
        s = s[:-2]
    return s


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)


# ---- Dimension tables -------------------------------------------------------


class StationRow(_Row):
    station: str = Field(min_length=1)
    freeway: Optional[str] = None
    direction: Optional[Literal["N", "S", "E", "W"]] = None
    county: str = Field(default="")
    city: str = Field(default="")
    abs_pm: float
    length: Optional[float] = Field(default=None, ge=0)
    lanes: Optional[int] = Field(default=None, ge=0)

    @field_validator("station", mode="before")
    @classmethod
    def _sid(cls, v):
        return _station_id(v)

    @field_validator("freeway", mode="before")
    @classmethod
    def _fwy(cls, v):
        if _blank(v):
            return None
        return _station_id(v)

    @field_validator("direction", mode="before")
    @classmethod
    def _dir_norm(cls, v):
        if _blank(v):
            return None
        s = str(v).strip().upper()
        synonyms = {
            "NB": "N",
            "SB": "S",
            "EB": "E",
            "WB": "W",
            "NORTH": "N",
            "SOUTH": "S",
            "EAST": "E",
            "WEST": "W",
        }
        return synonyms.get(s, s)

    @field_validator("county", "city", mode="before")
    @classmethod
    def _strip(cls, v):
        if _blank(v):
            return ""
        return _station_id(v)

    @field_validator("length", mode="before")
    @classmethod
    def _optional_num(cls, v):
        if _blank(v):
            return None
        return v

    @field_validator("lanes", mode="before")
    @classmethod
    def _lanes_int(cls, v):
        if _blank(v):
            return None
        return int(float(v))


# ---- Fact tables ------------------------------------------------------------


class ReadingRow(_Row):
    timestamp: datetime
    station: str = Field(min_length=1)
    abs_pm: float
    speed: float = Field(ge=0)
    flow: Optional[float] = Field(default=None, ge=0)
    occupancy: Optional[float] = Field(default=None, ge=0)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _ts(cls, v):
        return _parse_local(v)

    @field_validator("station", mode="before")
    @classmethod
    def _sid(cls, v):
        return _station_id(v)

    @field_validator("flow", "occupancy", mode="before")
    @classmethod
    def _optional_num(cls, v):
        if _blank(v):
            return None
        return v


class BottleneckSummaryRow(_Row):
    station: str = Field(min_length=1)
    days_active: int = Field(ge=0)
    avg_extent: float = Field(ge=0)
    avg_delay: Optional[float] = Field(default=None, ge=0)
    avg_duration: float = Field(ge=0)

    @field_validator("station", mode="before")
    @classmethod
    def _sid(cls, v):
        return _station_id(v)

    @field_validator("days_active", mode="before")
    @classmethod
    def _to_int(cls, v):
        return int(float(v))

    @field_validator("avg_delay", mode="before")
    @classmethod
    def _optional_num(cls, v):
        if _blank(v):
            return None
        return v


class WeatherRow(_Row):
    timestamp: datetime
    precip: float = Field(ge=0)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _ts(cls, v):
        return _parse_local(v)

    @field_validator("precip", mode="before")
    @classmethod
    def _trace(cls, v):
        # NOAA reports trace precipitation as "T"
        if isinstance(v, str) and v.strip().upper() == "T":
            return 0.0
        if _blank(v):
            return 0.0
        return v
