"""Speed contour (time x postmile) with detected bottlenecks overlaid.

Expected input schema:
    readings : timestamp, abs_pm, speed (station optional, used in hover)
    detections : rows returned by bottleneck_finder (same columns)

Colors run from red (congested) to green (free flow) on a fixed 0-70 mph
scale so plots of different days are comparable.
"""

from __future__ import annotations

from typing import Optional
import pandas as pd
import plotly.graph_objects as go

SPEED_COLORSCALE = [
    [0.0, "#b2182b"],
    [0.4, "#ef8a62"],
    [0.6, "#fddbc7"],
    [0.8, "#a6d96a"],
    [1.0, "#1a9641"],
]
SPEED_RANGE = (0.0, 70.0)


def build_speed_heatmap(
    readings: pd.DataFrame,
    detections: Optional[pd.DataFrame] = None,
    *,
    title: str | None = None,
    height: int = 520,
    width: Optional[int] = None,
) -> go.Figure:
    """Create a Plotly heatmap of speed by time of day and postmile.

    Parameters
    ----------
    readings : DataFrame
        Must contain ['timestamp', 'abs_pm', 'speed'].
    detections : DataFrame, optional
        Bottleneck rows to mark on top of the heatmap.
    title : str, optional
        Chart title; defaults to the date range of the readings.
    """
    if readings is None or readings.empty:
        raise ValueError("Empty readings DataFrame provided.")
    required = {"timestamp", "abs_pm", "speed"}
    if not required.issubset(readings.columns):
        missing = required - set(readings.columns)
        raise ValueError(f"Readings DataFrame missing required columns: {missing}")

    data = readings.copy()
    data["timestamp"] = pd.to_datetime(data["timestamp"], errors="coerce")
    data = data.dropna(subset=["timestamp", "abs_pm"])
    grid = data.pivot_table(
        index="abs_pm", columns="timestamp", values="speed", aggfunc="mean"
    ).sort_index()

    fig = go.Figure(
        go.Heatmap(
            x=grid.columns.tolist(),
            y=grid.index.tolist(),
            z=grid.values,
            colorscale=SPEED_COLORSCALE,
            zmin=SPEED_RANGE[0],
            zmax=SPEED_RANGE[1],
            colorbar=dict(title="mph"),
            hovertemplate="%{x|%H:%M}<br>PM %{y:.2f}<br>%{z:.1f} mph<extra></extra>",
        )
    )

    if detections is not None and not detections.empty:
        det = detections.copy()
        det["timestamp"] = pd.to_datetime(det["timestamp"], errors="coerce")
        hover = det["station"].astype(str) if "station" in det.columns else None
        fig.add_trace(
            go.Scatter(
                name="Bottleneck",
                x=det["timestamp"].tolist(),
                y=det["abs_pm"],
                mode="markers",
                marker=dict(symbol="x", size=7, color="#222"),
                text=hover,
                hovertemplate="VDS %{text}<br>%{x|%H:%M}<br>PM %{y:.2f}<extra></extra>",
            )
        )

    if title is None:
        first = data["timestamp"].min()
        last = data["timestamp"].max()
        title = f"Speed contour {first:%Y-%m-%d}"
        if last.normalize() != first.normalize():
            title += f" to {last:%Y-%m-%d}"

    fig.update_layout(
        title=title,
        xaxis_title="Time",
        yaxis_title="Absolute postmile",
        height=height,
        width=width,
        template="plotly_white",
        margin=dict(l=40, r=20, t=60, b=40),
    )
    return fig


__all__ = ["build_speed_heatmap"]
