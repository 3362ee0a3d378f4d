from __future__ import annotations
from datetime import date
from pathlib import Path
from typing import Dict, List, Mapping, Sequence
import re

import pandas as pd

# Timestamp layout of the clearinghouse text files
PEMS_DATE_FORMAT = "%m/%d/%Y %H:%M:%S"

_UNSAFE = re.compile(r"[^A-Za-z0-9\-_. ]+")


def to_csv_bytes(
    df: pd.DataFrame,
    *,
    columns: Sequence[str] | None = None,
    rename: Mapping[str, str] | None = None,
    index: bool = False,
    encoding: str = "utf-8",
    na_rep: str = "",
    float_format: str | None = None,
    date_format: str | None = None,
) -> bytes:
    """Encode detections, summaries or cluster labels as CSV for download.

    Parameters
    ----------
    columns : optional
        Columns to keep, in output order. Names not present are ignored.
    rename : optional
        {old: new} header mapping, applied after ``columns``.
    date_format : optional
        strftime layout for datetime columns. Pass ``PEMS_DATE_FORMAT`` to
        write timestamps the way the raw station files do.
    """
    if columns:
        out = df.loc[:, [c for c in columns if c in df.columns]]
    else:
        out = df
    if rename:
        out = out.rename(columns=dict(rename))
    text = out.to_csv(
        index=index,
        na_rep=na_rep,
        float_format=float_format,
        date_format=date_format,
    )
    return text.encode(encoding)


def safe_filename(name: str, ext: str = "csv") -> str:
    """Slug ``name`` into a portable file name ending in ``ext``."""
    stem = _UNSAFE.sub("_", name).strip().strip("._ ")
    stem = "_".join(stem.split()) or "export"
    return f"{stem}.{ext.lstrip('.')}"


def corridor_filename(
    kind: str, freeway: str | int, direction: str, day: date | None = None, ext: str = "csv"
) -> str:
    """e.g. corridor_filename("bottlenecks", 405, "N", date(2016, 1, 5)) -> bottlenecks_I405-N_2016-01-05.csv"""
    parts = [kind, f"I{freeway}-{str(direction).upper()}"]
    if day is not None:
        parts.append(day.isoformat())
    return safe_filename("_".join(parts), ext)


def export_tables(tables: Dict[str, pd.DataFrame], out_dir: Path) -> List[Path]:
    """Write each table to ``out_dir/<name>.csv`` (overwriting) and return the paths.

    Names that already end in ``.csv`` (e.g. from ``corridor_filename``) are used as is.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, df in tables.items():
        filename = name if name.endswith(".csv") else safe_filename(name, "csv")
        path = out_dir / filename
        df.to_csv(path, index=False)
        written.append(path)
    return written


__all__ = [
    "to_csv_bytes",
    "safe_filename",
    "corridor_filename",
    "export_tables",
    "PEMS_DATE_FORMAT",
]
