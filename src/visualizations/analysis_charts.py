from __future__ import annotations

from typing import Mapping, Optional
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

CONDITION_COLORS = {"rain": "#1f77b4", "dry": "#ff7f0e", "trace": "#7f7f7f"}


def _check(df: pd.DataFrame, required: set, label: str) -> None:
    if df is None or df.empty:
        raise ValueError(f"Empty {label} DataFrame provided.")
    if not required.issubset(df.columns):
        missing = required - set(df.columns)
        raise ValueError(f"{label} DataFrame missing required columns: {missing}")


def _minutes_label(m: int) -> str:
    return f"{int(m) // 60:02d}:{int(m) % 60:02d}"


def build_condition_profile(
    profile: pd.DataFrame,
    *,
    stat: str = "mean",
    value_label: str = "Flow (veh/5 min)",
    title: str = "Rain vs. dry time-of-day profile",
    color_map: Optional[Mapping[str, str]] = None,
    height: int = 420,
) -> go.Figure:
    """Line chart of a condition_profile() frame, one line per weather condition."""
    _check(profile, {"condition", "time_of_day", stat}, "Profile")
    colors = {**CONDITION_COLORS, **(color_map or {})}

    fig = go.Figure()
    for cond, grp in profile.sort_values("time_of_day").groupby("condition", sort=True):
        fig.add_trace(
            go.Scatter(
                name=str(cond),
                x=[_minutes_label(m) for m in grp["time_of_day"]],
                y=grp[stat],
                mode="lines+markers",
                line=dict(color=colors.get(str(cond))),
            )
        )
    fig.update_layout(
        title=title,
        xaxis_title="Time of day",
        yaxis_title=value_label,
        height=height,
        template="plotly_white",
        legend_title_text="Condition",
    )
    return fig


def build_cluster_scatter(
    labeled: pd.DataFrame,
    *,
    x: str = "avg_duration",
    y: str = "avg_extent",
    size: Optional[str] = "days_active",
    title: str = "Bottleneck clusters",
    height: int = 460,
) -> go.Figure:
    """Scatter of clustered bottlenecks coloured by k-means label."""
    _check(labeled, {x, y, "cluster"}, "Cluster")
    data = labeled.copy()
    data["cluster"] = data["cluster"].astype(str)
    size_col = size if size and size in data.columns else None
    if size_col:
        data[size_col] = pd.to_numeric(data[size_col], errors="coerce").fillna(0).clip(lower=0)
    hover = [c for c in ("station", "county", "city") if c in data.columns]
    fig = px.scatter(
        data,
        x=x,
        y=y,
        color="cluster",
        size=size_col,
        hover_data=hover or None,
        title=title,
        height=height,
        template="plotly_white",
    )
    return fig


def build_elbow_chart(curve: pd.DataFrame, *, title: str = "K-means elbow") -> go.Figure:
    """Inertia against k for choosing the number of clusters."""
    _check(curve, {"k", "inertia"}, "Elbow")
    fig = go.Figure(
        go.Scatter(x=curve["k"], y=curve["inertia"], mode="lines+markers", name="Inertia")
    )
    fig.update_layout(
        title=title,
        xaxis_title="k",
        yaxis_title="Within-cluster sum of squares",
        template="plotly_white",
    )
    return fig


__all__ = ["build_condition_profile", "build_cluster_scatter", "build_elbow_chart"]
