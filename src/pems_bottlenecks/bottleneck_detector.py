from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from utils.log import setup_logger, log_execution_time
from .params import BottleneckParams, READING_COLUMNS

logger = setup_logger(__name__)

CANDIDATE_COLUMNS = ["station", "timestamp"]

# Sorted (postmile, speed, station) arrays for one timestamp, plus a map from
# row position in the working table to position in those arrays.
_Snapshot = Tuple[np.ndarray, np.ndarray, np.ndarray, Dict[int, int]]


def _require_columns(readings: pd.DataFrame) -> None:
    missing = [c for c in READING_COLUMNS if c not in readings.columns]
    if missing:
        raise ValueError(f"readings missing required columns: {missing}")


def _empty_candidates() -> pd.DataFrame:
    return pd.DataFrame(columns=CANDIDATE_COLUMNS)


def _snapshot(rows: pd.DataFrame) -> _Snapshot:
    """Order the readings of one timestamp by postmile (stable for ties)."""
    rows = rows.dropna(subset=["abs_pm"]).sort_values("abs_pm", kind="mergesort")
    pm = rows["abs_pm"].to_numpy(dtype=float)
    speed = pd.to_numeric(rows["speed"], errors="coerce").to_numpy(dtype=float)
    stations = rows["station"].to_numpy()
    positions = {int(label): i for i, label in enumerate(rows.index)}
    return pm, speed, stations, positions


def _walk(
    pm: np.ndarray,
    speed: np.ndarray,
    stations: np.ndarray,
    seed_at: int,
    params: BottleneckParams,
) -> List:
    """Step outward from the seed and collect qualifying stations.

    A station qualifies when it is faster than its closer neighbour and faster
    than the seed by more than ``mph_trigger``. The walk ends at the first
    station farther than ``max_distance`` from the seed.
    """
    step = 1 if params.direction else -1
    seed_pm = pm[seed_at]
    seed_speed = speed[seed_at]

    found: List = []
    j = seed_at + step
    while 0 <= j < len(pm):
        if abs(pm[j] - seed_pm) > params.max_distance:
            break
        # Compared against the immediately closer station, not the seed
        rises = speed[j] - speed[j - step] > 0
        if rises and speed[j] - seed_speed > params.mph_trigger:
            if stations[j] not in found:
                found.append(stations[j])
        j += step
    return found


def _scan_snapshot(snap: _Snapshot, seed_pos: int, params: BottleneckParams) -> List:
    pm, speed, stations, positions = snap
    seed_at = positions.get(seed_pos)
    if seed_at is None:
        return []
    return _walk(pm, speed, stations, seed_at, params)


def search_slowdowns(
    readings: pd.DataFrame,
    seed,
    params: BottleneckParams,
) -> pd.DataFrame:
    """
    Find bottleneck stations near one slow reading.

    Args:
        readings: table with at least [timestamp, station, abs_pm, speed] for
            one day and corridor direction.
        seed: index label of the slow reading that anchors the search.
        params: search window, trigger and direction.

    Returns:
        DataFrame [station, timestamp] in walk order, one row per qualifying
        station, all stamped with the seed's timestamp. Empty when the seed is
        unknown or ambiguous (duplicate index label), alone at its
        timestamp, or nothing qualifies.
    """
    _require_columns(readings)
    if readings.empty or seed not in readings.index:
        return _empty_candidates()

    # 1) Resolve the seed to a row position
    pos = readings.index.get_loc(seed)
    if not isinstance(pos, (int, np.integer)):
        logger.warning("Seed label %r matches several rows; skipping", seed)
        return _empty_candidates()
    work = readings.reset_index(drop=True)
    ts = work.at[pos, "timestamp"]
    if pd.isna(ts):
        return _empty_candidates()

    # 2) Restrict to the seed's timestamp and walk outward
    snap = _snapshot(work.loc[work["timestamp"] == ts])
    found = _scan_snapshot(snap, int(pos), params)
    if not found:
        return _empty_candidates()
    return pd.DataFrame({"station": found, "timestamp": [ts] * len(found)})


@log_execution_time(logger)
def bottleneck_finder(
    readings: pd.DataFrame,
    params: BottleneckParams,
) -> pd.DataFrame:
    """
    Run the slowdown search from every reading below ``min_speed``.

    Seeds are visited in table order. For each timestamp only the first
    candidate found is kept, so simultaneous bottlenecks collapse to one.
    Candidates are joined back to ``readings`` on (station, timestamp).

    Returns:
        Rows of ``readings`` (same columns, fresh index) flagged as
        bottlenecks, at most one per timestamp.
    """
    _require_columns(readings)
    empty = readings.iloc[0:0].reset_index(drop=True)
    if readings.empty:
        return empty

    work = readings.reset_index(drop=True)
    speeds = pd.to_numeric(work["speed"], errors="coerce")
    seeds = work.index[(speeds < params.min_speed) & work["timestamp"].notna()]
    if len(seeds) == 0:
        logger.info("No readings below %.1f mph; nothing to scan", params.min_speed)
        return empty

    # Build each timestamp's ordered snapshot once
    seed_times = set(work.loc[seeds, "timestamp"])
    snapshots: Dict[object, _Snapshot] = {
        ts: _snapshot(rows)
        for ts, rows in work[work["timestamp"].isin(seed_times)].groupby(
            "timestamp", sort=False
        )
    }

    stations: List = []
    stamps: List = []
    for pos in seeds:
        ts = work.at[pos, "timestamp"]
        found = _scan_snapshot(snapshots[ts], int(pos), params)
        stations.extend(found)
        stamps.extend([ts] * len(found))

    if not stations:
        logger.info("Scanned %d seeds; no bottleneck candidates", len(seeds))
        return empty

    candidates = pd.DataFrame({"station": stations, "timestamp": stamps})
    # First-wins per timestamp
    candidates = candidates.drop_duplicates(subset=["timestamp"], keep="first")

    out = candidates.merge(work, on=["station", "timestamp"], how="inner")
    out = out.drop_duplicates(subset=["timestamp"], keep="first")
    out = out.loc[:, list(work.columns)].reset_index(drop=True)
    logger.info(
        "Scanned %d seeds; %d bottleneck detections across %d stations",
        len(seeds),
        len(out),
        out["station"].nunique(),
    )
    return out


def detect_bottleneck_days(
    readings: pd.DataFrame,
    params: BottleneckParams,
    days: Optional[List] = None,
) -> pd.DataFrame:
    """Apply ``bottleneck_finder`` to each calendar day separately and stack the results."""
    _require_columns(readings)
    if readings.empty:
        return readings.iloc[0:0].reset_index(drop=True)

    work = readings.copy()
    work["timestamp"] = pd.to_datetime(work["timestamp"], errors="coerce")
    dates = work["timestamp"].dt.normalize()
    frames = []
    for day, rows in work.groupby(dates, sort=True):
        if days is not None and pd.Timestamp(day).date() not in days:
            continue
        frames.append(bottleneck_finder(rows, params))
    frames = [f for f in frames if not f.empty]
    if not frames:
        return work.iloc[0:0].reset_index(drop=True)
    return pd.concat(frames, ignore_index=True)


__all__ = [
    "search_slowdowns",
    "bottleneck_finder",
    "detect_bottleneck_days",
    "CANDIDATE_COLUMNS",
]
