"""Readers for raw CalTrans PeMS clearinghouse files.

Station 5-minute files (``d07_text_station_5min_YYYY_MM_DD.txt.gz``) are
headerless CSV: 12 station-level columns followed by 5 columns per lane.
Station metadata files (``d07_text_meta_YYYY_MM_DD.txt``) are tab separated
with a header row.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional

import pandas as pd

from schema.validate import validate_dataframe
from utils.log import setup_logger

logger = setup_logger(__name__)

BASE_COLUMNS = [
    "timestamp",
    "station",
    "district",
    "freeway",
    "direction",
    "lane_type",
    "station_length",
    "samples",
    "pct_observed",
    "flow",
    "occupancy",
    "speed",
]
LANE_FIELDS = ["samples", "flow", "occupancy", "speed", "observed"]

META_COLUMNS = {
    "ID": "station",
    "Fwy": "freeway",
    "Dir": "direction",
    "District": "district",
    "County": "county",
    "City": "city",
    "State_PM": "state_pm",
    "Abs_PM": "abs_pm",
    "Latitude": "latitude",
    "Longitude": "longitude",
    "Length": "length",
    "Type": "type",
    "Lanes": "lanes",
    "Name": "name",
}

PEMS_TIMESTAMP_FORMAT = "%m/%d/%Y %H:%M:%S"


def station_5min_columns(n_columns: int) -> List[str]:
    """Column names for a station 5-minute file with ``n_columns`` fields."""
    if n_columns < len(BASE_COLUMNS):
        raise ValueError(
            f"station 5-minute file has {n_columns} columns, expected at least {len(BASE_COLUMNS)}"
        )
    names = list(BASE_COLUMNS)
    n_lanes = (n_columns - len(BASE_COLUMNS)) // len(LANE_FIELDS)
    for lane in range(1, n_lanes + 1):
        names.extend(f"lane_{lane}_{f}" for f in LANE_FIELDS)
    names.extend(f"extra_{i}" for i in range(len(names), n_columns))
    return names


def load_station_5min(path: str | Path) -> pd.DataFrame:
    """Parse one PeMS station 5-minute file (plain or gzipped)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"PeMS station file not found: {path}")

    raw = pd.read_csv(path, header=None, compression="infer", low_memory=False)
    raw.columns = station_5min_columns(raw.shape[1])
    raw["timestamp"] = pd.to_datetime(
        raw["timestamp"], format=PEMS_TIMESTAMP_FORMAT, errors="coerce"
    )
    bad_ts = int(raw["timestamp"].isna().sum())
    if bad_ts:
        raise ValueError(f"{path.name}: {bad_ts} rows with unparseable timestamps")

    raw["station"] = raw["station"].astype(str).str.strip()
    raw["freeway"] = raw["freeway"].astype(str).str.strip()
    raw["direction"] = raw["direction"].astype(str).str.strip().str.upper()
    raw["lane_type"] = raw["lane_type"].astype(str).str.strip().str.upper()
    for col in ("station_length", "samples", "pct_observed", "flow", "occupancy", "speed"):
        raw[col] = pd.to_numeric(raw[col], errors="coerce")
    logger.info("Loaded %d rows from %s", len(raw), path.name)
    return raw


def read_station_metadata(path: str | Path) -> pd.DataFrame:
    """Parse a PeMS station metadata file into a validated ``stations`` table."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"PeMS metadata file not found: {path}")

    meta = pd.read_csv(path, sep="\t", dtype=str)
    meta = meta.rename(columns=META_COLUMNS)
    keep = [c for c in META_COLUMNS.values() if c in meta.columns]
    meta = meta.loc[:, keep]
    for col in ("abs_pm", "latitude", "longitude", "length"):
        if col in meta.columns:
            meta[col] = pd.to_numeric(meta[col], errors="coerce")
    # Stations without a postmile cannot be placed on the corridor
    meta = meta.dropna(subset=["abs_pm"]).reset_index(drop=True)
    return validate_dataframe(meta, "stations")


def to_readings(
    raw: pd.DataFrame,
    stations: pd.DataFrame,
    freeway: str | int,
    direction: str,
    lane_type: str = "ML",
    day: Optional[date] = None,
) -> pd.DataFrame:
    """
    Narrow raw 5-minute data to one corridor and shape it as a readings table.

    Args:
        raw: output of ``load_station_5min``.
        stations: station metadata providing ``abs_pm``.
        freeway, direction: corridor, e.g. ("405", "N").
        lane_type: PeMS lane type; "ML" keeps mainline detectors.
        day: optional calendar date filter.

    Returns:
        DataFrame [timestamp, station, abs_pm, speed, flow, occupancy] sorted by
        timestamp then postmile. Rows without an observed speed are dropped.
    """
    columns = ["timestamp", "station", "abs_pm", "speed", "flow", "occupancy"]
    if raw is None or raw.empty:
        return pd.DataFrame(columns=columns)

    df = raw
    mask = (df["freeway"].astype(str) == str(freeway)) & (
        df["direction"].astype(str).str.upper() == str(direction).upper()
    )
    if lane_type:
        mask &= df["lane_type"].astype(str).str.upper() == lane_type.upper()
    if day is not None:
        mask &= df["timestamp"].dt.date == day
    df = df.loc[mask, ["timestamp", "station", "speed", "flow", "occupancy"]]

    pm = stations.loc[:, ["station", "abs_pm"]].copy()
    pm["station"] = pm["station"].astype(str)
    df = df.assign(station=df["station"].astype(str)).merge(pm, on="station", how="inner")
    dropped = int(df["speed"].isna().sum())
    df = df.dropna(subset=["speed"])
    if dropped:
        logger.debug("Dropped %d readings without speed", dropped)

    out = df.loc[:, columns].sort_values(["timestamp", "abs_pm"], kind="mergesort")
    return out.reset_index(drop=True)


__all__ = [
    "load_station_5min",
    "read_station_metadata",
    "to_readings",
    "station_5min_columns",
]
