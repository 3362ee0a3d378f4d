from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

from utils.log import setup_logger

logger = setup_logger(__name__)

# Expected layout of the local analysis database:
#   station_5min(timestamp TEXT ISO-8601, station TEXT, lane_type TEXT,
#                flow REAL, occupancy REAL, speed REAL)
#   stations(station TEXT, freeway TEXT, direction TEXT, county TEXT,
#            city TEXT, abs_pm REAL, length REAL, lanes INTEGER)
READINGS_SQL = """
SELECT r.timestamp AS timestamp,
       r.station   AS station,
       s.abs_pm    AS abs_pm,
       r.speed     AS speed,
       r.flow      AS flow,
       r.occupancy AS occupancy
FROM station_5min AS r
JOIN stations AS s ON s.station = r.station
WHERE s.freeway = ?
  AND s.direction = ?
  AND r.lane_type = ?
  AND date(r.timestamp) = ?
  AND r.speed IS NOT NULL
ORDER BY r.timestamp, s.abs_pm
"""


def _connect(db_path: str | Path) -> sqlite3.Connection:
    path = Path(db_path)
    if not path.exists():
        raise FileNotFoundError(f"Database not found: {path}")
    return sqlite3.connect(str(path))


def read_table(db_path: str | Path, name: str) -> pd.DataFrame:
    """Read a whole table. ``name`` must be a plain identifier."""
    if not name.replace("_", "").isalnum():
        raise ValueError(f"Invalid table name {name!r}")
    with closing(_connect(db_path)) as conn:
        return pd.read_sql_query(f"SELECT * FROM {name}", conn)


def read_readings(
    db_path: str | Path,
    freeway: str | int,
    direction: str,
    day: date,
    lane_type: str = "ML",
) -> pd.DataFrame:
    """Query one corridor-day of readings ordered by timestamp then postmile."""
    params = (str(freeway), direction.upper(), lane_type.upper(), day.isoformat())
    with closing(_connect(db_path)) as conn:
        df = pd.read_sql_query(READINGS_SQL, conn, params=params)
    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce")
    df["station"] = df["station"].astype(str)
    logger.info(
        "Read %d readings for %s-%s on %s", len(df), freeway, direction.upper(), day
    )
    return df


def write_table(
    db_path: str | Path,
    name: str,
    df: pd.DataFrame,
    if_exists: str = "replace",
    index_cols: Optional[list[str]] = None,
) -> None:
    """Store a DataFrame as a table, creating the database file if needed."""
    if not name.replace("_", "").isalnum():
        raise ValueError(f"Invalid table name {name!r}")
    out = df.copy()
    if "timestamp" in out.columns and pd.api.types.is_datetime64_any_dtype(out["timestamp"]):
        out["timestamp"] = out["timestamp"].dt.strftime("%Y-%m-%d %H:%M:%S")
    with closing(sqlite3.connect(str(db_path))) as conn:
        out.to_sql(name, conn, if_exists=if_exists, index=False)
        for col in index_cols or []:
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{name}_{col} ON {name} ({col})")
        conn.commit()


__all__ = ["read_readings", "read_table", "write_table", "READINGS_SQL"]
