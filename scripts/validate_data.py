#!/usr/bin/env python
"""Check a data directory (stations, readings, bottleneck_summary, weather CSVs)."""
from __future__ import annotations
import argparse
import sys

from adapters.csv_adapter import read_csv_tables, get_last_load_stats


def _report_failure(stats: dict, err: Exception) -> None:
    cross = stats.get("__cross_table__", {})
    if cross.get("errors"):
        print("\nCross-table problems:")
        for msg in cross["errors"]:
            print(f"  - {msg}")
        return
    bad = {name: meta["error"] for name, meta in stats.items() if meta.get("error")}
    for name, msg in bad.items():
        print(f"  - {name}: {msg}")
    if not bad:
        print(f"  - {err}")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("data_dir", nargs="?", default=None, help="defaults to data/ or $PEMS_DATA_DIR")
    args = ap.parse_args(argv)

    try:
        tables = read_csv_tables(args.data_dir)
    except (ValueError, FileNotFoundError) as e:
        print("✖ Data validation failed.")
        _report_failure(get_last_load_stats(), e)
        return 1

    print("✔ Data validation passed.")
    stats = get_last_load_stats()
    for name in tables:
        meta = stats.get(name, {})
        print(f"  - {name}: {meta.get('rows_valid', 0)}/{meta.get('rows_read', 0)} valid")
    readings = tables.get("readings")
    if readings is not None and not readings.empty:
        first, last = readings["timestamp"].min(), readings["timestamp"].max()
        print(f"  readings span {first:%Y-%m-%d %H:%M} to {last:%Y-%m-%d %H:%M}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
