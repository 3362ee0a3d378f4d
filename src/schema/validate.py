from __future__ import annotations
from typing import Type, Tuple, Dict, List
import pandas as pd
from pydantic import BaseModel, ValidationError

from schema.models import (
    StationRow,
    ReadingRow,
    BottleneckSummaryRow,
    WeatherRow,
)

# Map logical table name -> (pydantic model, required columns for friendly messages)
TABLE_REGISTRY: Dict[str, Tuple[Type[BaseModel], Tuple[str, ...]]] = {
    "stations": (StationRow, ("station", "abs_pm")),
    "readings": (ReadingRow, ("timestamp", "station", "abs_pm", "speed")),
    "bottleneck_summary": (
        BottleneckSummaryRow,
        ("station", "days_active", "avg_extent", "avg_delay", "avg_duration"),
    ),
    "weather": (WeatherRow, ("timestamp", "precip")),
}


def validate_dataframe(df: pd.DataFrame, table: str) -> pd.DataFrame:
    """
    Row-level validation using Pydantic. Returns a normalized DataFrame.
    Raises ValueError with aggregated, friendly messages if any row is invalid.

    Columns not declared on the row model are carried through unchanged so that
    extra PeMS fields (lane detail, samples, % observed) survive validation.
    """
    if table not in TABLE_REGISTRY:
        raise ValueError(f"Unknown table '{table}'")

    model, req_cols = TABLE_REGISTRY[table]

    missing = [c for c in req_cols if c not in df.columns]
    if missing:
        raise ValueError(f"{table}: missing required columns: {missing}")

    records = df.to_dict(orient="records")
    normalized: list[dict] = []
    errors: list[str] = []

    for i, rec in enumerate(records, start=1):
        try:
            obj = model(**rec)
            row = dict(rec)
            row.update(obj.model_dump())
            normalized.append(row)
        except ValidationError as ve:
            for err in ve.errors():
                loc = ".".join(str(x) for x in err.get("loc", []) if x is not None)
                msg = err.get("msg", "invalid")
                bad = rec.get(loc, None)
                errors.append(f"{table}: row {i} field '{loc}': {msg} (value={bad!r})")

    if errors:
        # Limit extremely noisy output
        head = "\n".join(errors[:100])
        more = "" if len(errors) <= 100 else f"\n... and {len(errors)-100} more"
        raise ValueError(f"Validation failed for {table}:\n{head}{more}")

    columns = list(df.columns) + [c for c in model.model_fields if c not in df.columns]
    out = pd.DataFrame.from_records(normalized, columns=columns)
    if "timestamp" in out.columns:
        out["timestamp"] = pd.to_datetime(out["timestamp"])
    return out


def check_uniques_and_fks(tables: Dict[str, pd.DataFrame]) -> List[str]:
    """
    Table-level validation: uniqueness and cross-table foreign keys.
    Returns a list of error strings (empty if OK).
    """
    errs: list[str] = []

    def dup_errors(df: pd.DataFrame, cols: list[str], label: str):
        if df is None or df.empty or not set(cols).issubset(df.columns):
            return
        dups = df.duplicated(subset=cols, keep=False)
        if dups.any():
            bad = df.loc[dups, cols].astype(str).drop_duplicates()
            for _, r in bad.iterrows():
                key = ", ".join(f"{c}={r[c]!r}" for c in cols)
                errs.append(f"DUP_KEY {label}: {key}")

    # Uniques
    if "stations" in tables:
        dup_errors(tables["stations"], ["station"], "stations.station")
    if "readings" in tables:
        dup_errors(
            tables["readings"], ["station", "timestamp"], "readings.(station,timestamp)"
        )
        # The scanner orders neighbours by postmile; ties make that order ambiguous
        dup_errors(
            tables["readings"], ["timestamp", "abs_pm"], "readings.(timestamp,abs_pm)"
        )
    if "bottleneck_summary" in tables:
        dup_errors(
            tables["bottleneck_summary"], ["station"], "bottleneck_summary.station"
        )
    if "weather" in tables:
        dup_errors(tables["weather"], ["timestamp"], "weather.timestamp")

    # FKs
    stations = tables.get("stations")
    if stations is not None and not stations.empty and "station" in stations.columns:
        sset = set(stations["station"].astype(str))
        for name in ("readings", "bottleneck_summary"):
            df = tables.get(name)
            if df is None or df.empty or "station" not in df.columns:
                continue
            unknown = sorted(set(df["station"].astype(str)) - sset)
            for sid in unknown[:50]:
                errs.append(f"FK {name}: station {sid!r} not found in stations")
            if len(unknown) > 50:
                errs.append(f"FK {name}: ... and {len(unknown) - 50} more unknown stations")

    return errs
