"""Per-station bottleneck statistics derived from finder detections.

The summary feeds the clustering step and carries the same columns as a
``bottleneck_summary`` table loaded from disk:

    station, days_active, episodes, avg_extent, avg_delay, avg_duration

* Episodes: detections of one station at consecutive sampling intervals
  (gap <= ``interval``) form one activation; its duration is
  ``last - first + interval``.
* Extent: starting at the bottleneck and moving toward the congested side
  (opposite to the scan direction), skip the stations that are not yet slow,
  then follow the contiguous run of stations below ``min_speed``. The extent
  is the postmile distance from the bottleneck to the far end of that run.
* Delay: vehicle-hours lost over that run,
  ``flow * length * (1/speed - 1/free_flow_speed)``, clipped at zero.
  NaN when the readings carry no ``flow``.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from utils.log import setup_logger
from .params import BottleneckParams, READING_COLUMNS

logger = setup_logger(__name__)

SUMMARY_COLUMNS = [
    "station",
    "days_active",
    "episodes",
    "avg_extent",
    "avg_delay",
    "avg_duration",
]

FREE_FLOW_SPEED = 60.0
DEFAULT_STATION_LENGTH = 0.5


def _empty_summary() -> pd.DataFrame:
    return pd.DataFrame(columns=SUMMARY_COLUMNS)


def count_episodes(times: pd.Series, interval: pd.Timedelta) -> Tuple[int, float]:
    """Return (episode count, mean episode duration in minutes) for one station."""
    ts = pd.Series(pd.to_datetime(times).dropna().unique()).sort_values()
    if ts.empty:
        return 0, 0.0
    gaps = ts.diff()
    starts = (gaps.isna()) | (gaps > interval)
    episode_id = starts.cumsum()
    spans = ts.groupby(episode_id.values).agg(["min", "max"])
    durations = (spans["max"] - spans["min"] + interval).dt.total_seconds() / 60.0
    return int(len(spans)), float(durations.mean())


def queue_at(
    rows: pd.DataFrame,
    station,
    params: BottleneckParams,
    lengths: Optional[Dict[str, float]] = None,
) -> Tuple[float, float]:
    """
    Measure the queue behind a bottleneck at one timestamp.

    Args:
        rows: readings sharing one timestamp.
        station: the bottleneck station.

    Returns:
        (extent in miles, delay in vehicle-hours). Delay is NaN without ``flow``.
    """
    rows = rows.dropna(subset=["abs_pm"]).sort_values("abs_pm", kind="mergesort")
    stations = rows["station"].astype(str).to_numpy()
    hits = np.flatnonzero(stations == str(station))
    has_flow = "flow" in rows.columns
    if len(hits) == 0:
        return 0.0, (0.0 if has_flow else float("nan"))

    pm = rows["abs_pm"].to_numpy(dtype=float)
    speed = pd.to_numeric(rows["speed"], errors="coerce").to_numpy(dtype=float)
    flow = (
        pd.to_numeric(rows["flow"], errors="coerce").fillna(0).to_numpy(dtype=float)
        if has_flow
        else None
    )

    b = int(hits[0])
    step = -1 if params.direction else 1
    j = b + step
    # Transition zone between the bottleneck and the back of the queue
    while 0 <= j < len(pm) and not speed[j] < params.min_speed:
        j += step

    extent = 0.0
    delay = 0.0
    while 0 <= j < len(pm) and speed[j] < params.min_speed:
        extent = abs(pm[b] - pm[j])
        if flow is not None and speed[j] > 0:
            length = (lengths or {}).get(stations[j], DEFAULT_STATION_LENGTH)
            lost = 1.0 / speed[j] - 1.0 / FREE_FLOW_SPEED
            delay += flow[j] * length * max(0.0, lost)
        j += step

    return float(extent), (float(delay) if has_flow else float("nan"))


def summarize_bottlenecks(
    detections: pd.DataFrame,
    readings: pd.DataFrame,
    params: BottleneckParams,
    stations: Optional[pd.DataFrame] = None,
    interval: pd.Timedelta = pd.Timedelta(minutes=5),
) -> pd.DataFrame:
    """Aggregate finder detections into one summary row per bottleneck station."""
    if detections is None or detections.empty:
        return _empty_summary()
    missing = [c for c in READING_COLUMNS if c not in readings.columns]
    if missing:
        raise ValueError(f"readings missing required columns: {missing}")

    lengths: Dict[str, float] = {}
    if stations is not None and not stations.empty and "length" in stations.columns:
        meta = stations.dropna(subset=["length"])
        lengths = dict(zip(meta["station"].astype(str), meta["length"].astype(float)))

    det = detections.copy()
    det["timestamp"] = pd.to_datetime(det["timestamp"], errors="coerce")
    det = det.dropna(subset=["timestamp"])
    work = readings.copy()
    work["timestamp"] = pd.to_datetime(work["timestamp"], errors="coerce")
    snapshots = {
        ts: rows
        for ts, rows in work[work["timestamp"].isin(set(det["timestamp"]))].groupby(
            "timestamp", sort=False
        )
    }

    extents = []
    delays = []
    for station, ts in zip(det["station"], det["timestamp"]):
        rows = snapshots.get(ts)
        if rows is None:
            extents.append(0.0)
            delays.append(float("nan"))
            continue
        extent, delay = queue_at(rows, station, params, lengths)
        extents.append(extent)
        delays.append(delay)
    det["extent"] = extents
    det["delay"] = delays

    out = []
    for station, grp in det.groupby(det["station"].astype(str), sort=True):
        n_episodes, avg_duration = count_episodes(grp["timestamp"], interval)
        out.append(
            {
                "station": station,
                "days_active": int(grp["timestamp"].dt.normalize().nunique()),
                "episodes": n_episodes,
                "avg_extent": float(grp["extent"].mean()),
                "avg_delay": float(grp["delay"].mean()),
                "avg_duration": avg_duration,
            }
        )
    summary = pd.DataFrame(out, columns=SUMMARY_COLUMNS)
    logger.info("Summarized %d bottleneck stations", len(summary))
    return summary


__all__ = [
    "summarize_bottlenecks",
    "queue_at",
    "count_episodes",
    "SUMMARY_COLUMNS",
    "FREE_FLOW_SPEED",
    "DEFAULT_STATION_LENGTH",
]
