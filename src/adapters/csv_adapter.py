import os
from pathlib import Path
import pandas as pd
from typing import Dict, Any

from schema.validate import validate_dataframe, check_uniques_and_fks
from utils.log import setup_logger

logger = setup_logger(__name__)

# In-memory stats for last load
# Note: values include ints and optional error strings under key 'error'.
_LAST_LOAD_STATS: Dict[str, Dict[str, Any]] = {}

DATA_DIR = Path(
    os.environ.get("PEMS_DATA_DIR", Path(__file__).resolve().parents[2] / "data")
)

TABLES_ORDER = ["stations", "readings", "bottleneck_summary", "weather"]


def normalize_readings(df: pd.DataFrame) -> pd.DataFrame:
    """Vectorized normalization for the (large) readings table."""
    if df.empty:
        return df
    out = df.copy()
    required_cols = ["timestamp", "station", "abs_pm", "speed"]
    missing = [c for c in required_cols if c not in out.columns]
    if missing:
        raise ValueError(f"readings missing required columns: {missing}")

    out["timestamp"] = pd.to_datetime(out["timestamp"], errors="coerce")
    if getattr(out["timestamp"].dt, "tz", None) is not None:
        out["timestamp"] = out["timestamp"].dt.tz_localize(None)
    out["station"] = out["station"].astype(str).str.strip().str.replace(
        r"\.0$", "", regex=True
    )
    out["abs_pm"] = pd.to_numeric(out["abs_pm"], errors="coerce")
    out["speed"] = pd.to_numeric(out["speed"], errors="coerce")
    for col in ("flow", "occupancy"):
        if col in out.columns:
            out[col] = pd.to_numeric(out[col], errors="coerce")

    bad_ts = out["timestamp"].isna()
    bad_station = out["station"].isin(["", "nan", "None"])
    bad_pm = out["abs_pm"].isna()
    bad_speed_nan = out["speed"].isna()
    bad_speed_neg = out["speed"] < 0

    invalid_mask = bad_ts | bad_station | bad_pm | bad_speed_nan | bad_speed_neg
    if invalid_mask.any():
        counts = {
            "bad_timestamp": int(bad_ts.sum()),
            "bad_station": int(bad_station.sum()),
            "bad_abs_pm": int(bad_pm.sum()),
            "bad_speed_nan": int(bad_speed_nan.sum()),
            "bad_speed_negative": int(bad_speed_neg.sum()),
        }
        raise ValueError(f"readings validation failed: {counts}")
    return out


def read_csv_tables(data_dir: str | Path | None = None) -> Dict[str, pd.DataFrame]:
    """
    Load stations, readings, bottleneck_summary and weather CSVs from ``data_dir``.

    Missing files become empty tables; invalid tables fail fast with ValueError.
    """
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    tables: Dict[str, pd.DataFrame] = {}
    _LAST_LOAD_STATS.clear()
    for name in TABLES_ORDER:
        path = base / f"{name}.csv"
        if path.exists():
            raw = pd.read_csv(path)
            rows_read = len(raw)
            try:
                if name == "readings":
                    df = normalize_readings(raw)
                elif raw.empty:
                    df = raw
                else:
                    df = validate_dataframe(raw, name)
                rows_valid = len(df)
                _LAST_LOAD_STATS[name] = {
                    "rows_read": rows_read,
                    "rows_valid": rows_valid,
                    "rows_dropped": 0,
                }
                tables[name] = df
            except Exception as e:
                # Record failure stats and re-raise to enforce fast-fail at the table level
                _LAST_LOAD_STATS[name] = {
                    "rows_read": rows_read,
                    "rows_valid": 0,
                    "rows_dropped": rows_read,
                    "error": str(e),
                }
                logger.error("Failed to load %s: %s", path, e)
                raise
        else:
            _LAST_LOAD_STATS[name] = {
                "rows_read": 0,
                "rows_valid": 0,
                "rows_dropped": 0,
            }
            tables[name] = pd.DataFrame()

    fk_errs = check_uniques_and_fks(tables)
    if fk_errs:
        _LAST_LOAD_STATS["__cross_table__"] = {"errors": fk_errs}
        details = "\n".join(fk_errs)
        raise ValueError(f"Cross-table validation failed:\n{details}")

    logger.info(
        "Loaded tables from %s: %s",
        base,
        ", ".join(f"{k}={len(v)}" for k, v in tables.items()),
    )
    return tables


def get_last_load_stats() -> Dict[str, Dict[str, Any]]:
    """Return counts of rows read/kept/dropped for the most recent read_csv_tables() call.
    On validation failure, stats for the offending table include an 'error' string and rows_valid=0.
    """
    return dict(_LAST_LOAD_STATS)
