#!/usr/bin/env python
"""
Detect bottlenecks in a readings CSV (or a raw PeMS station 5-minute file).

Outputs, under --out:
- bottlenecks_<corridor>.csv : one detection per timestamp (finder output)
- summary_<corridor>.csv     : per-station days_active / extent / delay / duration
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path

import pandas as pd

from adapters.csv_adapter import normalize_readings
from adapters.pems_adapter import load_station_5min, read_station_metadata, to_readings
from pems_bottlenecks import BottleneckParams, detect_bottleneck_days, summarize_bottlenecks
from export.csv_exporter import corridor_filename, export_tables, PEMS_DATE_FORMAT


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    p.add_argument("readings", type=Path, help="readings CSV or PeMS station_5min file")
    p.add_argument("--meta", type=Path, help="PeMS station metadata (required for raw files)")
    p.add_argument("--freeway", default="405")
    p.add_argument("--direction", default="N")
    p.add_argument("--min-speed", type=float, default=40.0)
    p.add_argument("--max-distance", type=float, default=1.0)
    p.add_argument("--mph-trigger", type=float, default=20.0)
    p.add_argument(
        "--decreasing",
        action="store_true",
        help="scan toward decreasing postmile (default: increasing)",
    )
    p.add_argument("--out", type=Path, default=Path("output"))
    return p


def load_readings(args) -> tuple[pd.DataFrame, pd.DataFrame | None]:
    if args.meta is not None:
        stations = read_station_metadata(args.meta)
        raw = load_station_5min(args.readings)
        return to_readings(raw, stations, args.freeway, args.direction), stations
    return normalize_readings(pd.read_csv(args.readings)), None


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        params = BottleneckParams(
            min_speed=args.min_speed,
            max_distance=args.max_distance,
            mph_trigger=args.mph_trigger,
            direction=not args.decreasing,
        )
        readings, stations = load_readings(args)
    except Exception as e:
        print(f"✖ {e}")
        return 1

    print(f"Loaded {len(readings)} readings from {args.readings}")
    detections = detect_bottleneck_days(readings, params)
    summary = summarize_bottlenecks(detections, readings, params, stations)

    if not detections.empty:
        detections = detections.assign(
            timestamp=detections["timestamp"].dt.strftime(PEMS_DATE_FORMAT)
        )
    written = export_tables(
        {
            corridor_filename("bottlenecks", args.freeway, args.direction): detections,
            corridor_filename("summary", args.freeway, args.direction): summary,
        },
        args.out,
    )
    print(f"✔ {len(detections)} detections at {len(summary)} stations")
    for path in written:
        print(f"  - {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
