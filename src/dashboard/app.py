import os

os.environ.setdefault("PANDAS_USE_BOTTLENECK", "0")

import streamlit as st
import pandas as pd
from adapters.csv_adapter import read_csv_tables, get_last_load_stats
from pems_bottlenecks import (
    BottleneckParams,
    detect_bottleneck_days,
    summarize_bottlenecks,
)
from weather import classify_days, tag_conditions, condition_profile, condition_summary
from ml.clustering import cluster_bottlenecks, elbow_curve
from visualizations.speed_heatmap import build_speed_heatmap
from visualizations.analysis_charts import (
    build_condition_profile,
    build_cluster_scatter,
    build_elbow_chart,
)
from export.csv_exporter import to_csv_bytes, PEMS_DATE_FORMAT
from export.excel_exporter import to_excel_bytes

st.set_page_config(page_title="PeMS Bottleneck Explorer", layout="wide")

st.title("PeMS Bottleneck Explorer")

with st.sidebar:
    st.header("Data Source")
    data_dir = st.text_input(
        "Data directory",
        value=os.environ.get("PEMS_DATA_DIR", ""),
        help="Folder with readings.csv, stations.csv, weather.csv and optionally bottleneck_summary.csv. "
        "Leave empty for the bundled data/ folder.",
    )

    st.header("Bottleneck Search")
    min_speed = st.number_input("Seed speed below (mph)", min_value=1.0, value=40.0, step=1.0)
    max_distance = st.number_input(
        "Max distance (miles)", min_value=0.1, value=1.0, step=0.1
    )
    mph_trigger = st.number_input(
        "Speed differential trigger (mph)", min_value=0.0, value=20.0, step=1.0
    )
    direction = st.radio(
        "Scan direction",
        ["Increasing postmile", "Decreasing postmile"],
        index=0,
        help="Walk from each slow reading toward higher or lower postmiles.",
    )

# Load data (fast-fail): if any table is invalid, surface the error and stop
try:
    _tables = read_csv_tables(data_dir.strip() or None)
except Exception as e:
    st.error(f"Data load failed: {e}")
    stats = get_last_load_stats()
    if stats:
        st.subheader("Last load stats")
        st.json(stats)
    st.stop()

readings = _tables.get("readings", pd.DataFrame())
stations = _tables.get("stations", pd.DataFrame())
weather = _tables.get("weather", pd.DataFrame())

try:
    params = BottleneckParams(
        min_speed=float(min_speed),
        max_distance=float(max_distance),
        mph_trigger=float(mph_trigger),
        direction=direction == "Increasing postmile",
    )
except Exception as e:
    st.error(f"Invalid search parameters: {e}")
    st.stop()

col1, col2, col3, col4 = st.columns(4)
col1.metric("Readings", f"{len(readings):,}")
col2.metric("Stations", f"{readings['station'].nunique() if not readings.empty else 0}")
n_days = readings["timestamp"].dt.normalize().nunique() if not readings.empty else 0
col3.metric("Days", f"{n_days}")
col4.metric("Weather rows", f"{len(weather):,}")

tab_bn, tab_wx, tab_cl = st.tabs(["Bottlenecks", "Rain vs. dry", "Clusters"])

### BOTTLENECK DETECTION ###

with tab_bn:
    if readings.empty:
        st.info("No readings loaded.")
    else:
        days = sorted(readings["timestamp"].dt.date.unique())
        day = st.selectbox("Day", days, index=0, format_func=lambda d: d.isoformat())
        day_rows = readings[readings["timestamp"].dt.date == day]

        detections = detect_bottleneck_days(readings, params)
        st.session_state["detections"] = detections
        day_det = (
            detections[detections["timestamp"].dt.date == day]
            if not detections.empty
            else detections
        )

        try:
            fig = build_speed_heatmap(day_rows, day_det)
            st.plotly_chart(fig, use_container_width=True)
        except Exception as e:
            st.warning(f"Could not draw speed contour: {e}")

        st.caption(
            f"{len(day_det)} detections on {day.isoformat()}, "
            f"{len(detections)} across all days (one per timestamp at most)."
        )
        st.dataframe(day_det, use_container_width=True)

        summary = summarize_bottlenecks(detections, readings, params, stations)
        st.session_state["summary"] = summary
        st.subheader("Bottleneck summary")
        st.dataframe(summary, use_container_width=True)

        c1, c2 = st.columns(2)
        c1.download_button(
            "Download detections (CSV)",
            data=to_csv_bytes(detections, date_format=PEMS_DATE_FORMAT),
            file_name="bottleneck_detections.csv",
            mime="text/csv",
        )
        c2.download_button(
            "Download detections + summary (XLSX)",
            data=to_excel_bytes({"detections": detections, "summary": summary}),
            file_name="bottlenecks.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

### RAIN VS DRY ###

with tab_wx:
    if readings.empty or weather.empty:
        st.info("Load readings and weather to compare rainy and dry days.")
    else:
        w1, w2, w3 = st.columns(3)
        threshold = w1.number_input(
            "Rain day threshold (in)", min_value=0.01, value=0.1, step=0.01
        )
        value_label = w2.selectbox("Measure", ["flow", "speed", "occupancy"], index=0)
        freq = w3.selectbox("Time bucket", ["5min", "15min", "30min", "1h"], index=3)
        weekdays_only = st.checkbox("Weekdays only", value=True)

        days_wx = classify_days(weather, min_daily_precip=float(threshold))
        tagged = tag_conditions(readings, days_wx)
        st.dataframe(days_wx, use_container_width=True)

        if value_label not in tagged.columns:
            st.info(f"Readings carry no '{value_label}' column.")
        else:
            profile = condition_profile(
                tagged, value=value_label, freq=freq, weekdays_only=weekdays_only
            )
            if profile.empty:
                st.info("Need at least one rainy and one dry day with readings.")
            else:
                st.plotly_chart(
                    build_condition_profile(profile, value_label=value_label),
                    use_container_width=True,
                )
                summ = condition_summary(tagged, value=value_label, weekdays_only=weekdays_only)
                st.dataframe(summ, use_container_width=True)
                pct = summ.attrs.get("pct_change_rain_vs_dry")
                if pct is not None and pd.notna(pct):
                    st.metric(f"Rain vs. dry mean {value_label}", f"{pct:+.1f}%")

### CLUSTERING ###

with tab_cl:
    summary = _tables.get("bottleneck_summary", pd.DataFrame())
    if summary.empty:
        summary = st.session_state.get("summary", pd.DataFrame())
    if summary is None or summary.empty:
        st.info("No bottleneck summary available to cluster.")
    else:
        k = st.slider("Number of clusters (k)", min_value=1, max_value=10, value=4)
        try:
            curve = elbow_curve(summary, stations, k_values=range(1, 11))
            st.plotly_chart(build_elbow_chart(curve), use_container_width=True)
            result = cluster_bottlenecks(summary, stations, k=int(k))
            st.plotly_chart(build_cluster_scatter(result.labeled), use_container_width=True)
            st.subheader("Cluster centres")
            st.dataframe(result.centers, use_container_width=True)
            st.download_button(
                "Download cluster labels (CSV)",
                data=to_csv_bytes(result.labeled),
                file_name="bottleneck_clusters.csv",
                mime="text/csv",
            )
        except Exception as e:
            st.error(f"Clustering failed: {e}")
