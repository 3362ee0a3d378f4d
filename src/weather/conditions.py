"""Rain vs. dry traffic comparison.

Days are labelled from precipitation totals, joined onto 5-minute readings by
calendar date, and traffic measures are then profiled by time of day for each
condition. Days with a trace of rain (above zero, below the threshold) are
labelled ``trace`` and left out of rain/dry comparisons.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

CONDITIONS = ("rain", "dry")

DAY_COLUMNS = ["date", "total_precip", "condition"]
PROFILE_COLUMNS = ["condition", "time_of_day", "mean", "median", "count"]
SUMMARY_COLUMNS = ["condition", "days", "mean", "median", "std", "count"]


def add_time_parts(df: pd.DataFrame, column: str = "timestamp") -> pd.DataFrame:
    """Return a copy with date, hour, minute, time_of_day, weekday and is_weekend columns.

    ``time_of_day`` is minutes since midnight. Unparseable timestamps yield NaN/NaT parts.
    """
    out = df.copy()
    if out.empty or column not in out.columns:
        for col in ("date", "hour", "minute", "time_of_day", "weekday", "is_weekend"):
            out[col] = pd.Series(dtype=object)
        return out
    ts = pd.to_datetime(out[column], errors="coerce")
    out["date"] = ts.dt.date
    out["hour"] = ts.dt.hour
    out["minute"] = ts.dt.minute
    out["time_of_day"] = ts.dt.hour * 60 + ts.dt.minute
    out["weekday"] = ts.dt.day_name()
    out["is_weekend"] = ts.dt.dayofweek >= 5
    return out


def classify_days(weather: pd.DataFrame, min_daily_precip: float = 0.1) -> pd.DataFrame:
    """
    Total precipitation per calendar day and label each day.

    Returns:
        DataFrame [date, total_precip, condition] where condition is
        ``rain`` (total >= min_daily_precip), ``dry`` (total == 0) or ``trace``.
    """
    if weather is None or weather.empty:
        return pd.DataFrame(columns=DAY_COLUMNS)
    if not {"timestamp", "precip"}.issubset(weather.columns):
        return pd.DataFrame(columns=DAY_COLUMNS)

    df = weather.copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce")
    df["precip"] = pd.to_numeric(df["precip"], errors="coerce").fillna(0.0)
    df = df.dropna(subset=["timestamp"])
    if df.empty:
        return pd.DataFrame(columns=DAY_COLUMNS)

    days = (
        df.groupby(df["timestamp"].dt.date)["precip"]
        .sum()
        .reset_index(name="total_precip")
        .rename(columns={"timestamp": "date"})
    )
    days["condition"] = np.select(
        [days["total_precip"] >= min_daily_precip, days["total_precip"] <= 0],
        ["rain", "dry"],
        default="trace",
    )
    return days.loc[:, DAY_COLUMNS].sort_values("date").reset_index(drop=True)


def tag_conditions(readings: pd.DataFrame, day_conditions: pd.DataFrame) -> pd.DataFrame:
    """Attach the day's weather condition to each reading (NaN when the day is unknown)."""
    out = add_time_parts(readings)
    if day_conditions is None or day_conditions.empty:
        out["condition"] = pd.Series(np.nan, index=out.index, dtype=object)
        return out
    dates = pd.to_datetime(day_conditions["date"], errors="coerce").dt.date
    lookup = dict(zip(dates, day_conditions["condition"]))
    out["condition"] = out["date"].map(lookup)
    return out


def _comparable(
    tagged: pd.DataFrame, value: str, weekdays_only: bool, conditions: Iterable[str]
) -> pd.DataFrame:
    df = tagged[tagged["condition"].isin(list(conditions))]
    if weekdays_only and "is_weekend" in df.columns:
        df = df[~df["is_weekend"].astype(bool)]
    df = df.assign(**{value: pd.to_numeric(df[value], errors="coerce")})
    return df.dropna(subset=[value])


def condition_profile(
    tagged: pd.DataFrame,
    value: str = "flow",
    freq: str = "1h",
    weekdays_only: bool = True,
    conditions: Iterable[str] = CONDITIONS,
) -> pd.DataFrame:
    """
    Time-of-day profile of ``value`` per weather condition.

    Args:
        tagged: readings carrying ``condition`` (see ``tag_conditions``).
        value: measure to profile, e.g. "flow", "speed", "occupancy".
        freq: time-of-day bucket width (pandas offset alias, e.g. "5min", "1h").
        weekdays_only: drop Saturday/Sunday so commute peaks line up.

    Returns:
        DataFrame [condition, time_of_day, mean, median, count]; time_of_day
        is the bucket start in minutes since midnight.
    """
    if tagged is None or tagged.empty or value not in tagged.columns:
        return pd.DataFrame(columns=PROFILE_COLUMNS)
    if "condition" not in tagged.columns:
        return pd.DataFrame(columns=PROFILE_COLUMNS)

    df = _comparable(tagged, value, weekdays_only, conditions)
    if df.empty:
        return pd.DataFrame(columns=PROFILE_COLUMNS)

    bucket = int(pd.Timedelta(freq).total_seconds() // 60) or 1
    df = df.assign(time_of_day=(df["time_of_day"] // bucket) * bucket)
    prof = (
        df.groupby(["condition", "time_of_day"])[value]
        .agg(["mean", "median", "count"])
        .reset_index()
    )
    prof["time_of_day"] = prof["time_of_day"].astype(int)
    return prof.loc[:, PROFILE_COLUMNS].sort_values(["condition", "time_of_day"]).reset_index(
        drop=True
    )


def condition_summary(
    tagged: pd.DataFrame,
    value: str = "flow",
    weekdays_only: bool = True,
) -> pd.DataFrame:
    """
    Overall statistics of ``value`` per condition plus rain-vs-dry percent change.

    The percent change is stored in ``DataFrame.attrs["pct_change_rain_vs_dry"]``
    (NaN when either condition is absent).
    """
    empty = pd.DataFrame(columns=SUMMARY_COLUMNS)
    empty.attrs["pct_change_rain_vs_dry"] = float("nan")
    if tagged is None or tagged.empty or value not in tagged.columns:
        return empty
    if "condition" not in tagged.columns:
        return empty

    df = _comparable(tagged, value, weekdays_only, CONDITIONS)
    if df.empty:
        return empty

    summary = (
        df.groupby("condition")
        .agg(
            days=("date", "nunique"),
            mean=(value, "mean"),
            median=(value, "median"),
            std=(value, "std"),
            count=(value, "count"),
        )
        .reset_index()
    )
    means = dict(zip(summary["condition"], summary["mean"]))
    dry = means.get("dry")
    rain = means.get("rain")
    pct = float("nan")
    if dry is not None and rain is not None and dry != 0:
        pct = float((rain - dry) / dry * 100.0)
    summary = summary.loc[:, SUMMARY_COLUMNS]
    summary.attrs["pct_change_rain_vs_dry"] = pct
    return summary


__all__ = [
    "add_time_parts",
    "classify_days",
    "tag_conditions",
    "condition_profile",
    "condition_summary",
]
