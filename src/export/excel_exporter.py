from __future__ import annotations

from io import BytesIO
from typing import Mapping

import pandas as pd

# Excel caps sheet names at 31 characters and forbids a few symbols
_SHEET_BAD_CHARS = set('[]:*?/\\')


def sheet_title(name: str) -> str:
    title = "".join("_" if ch in _SHEET_BAD_CHARS else ch for ch in str(name)).strip()
    return (title or "Sheet")[:31]


def to_excel_bytes(
    tables: Mapping[str, pd.DataFrame],
    *,
    index: bool = False,
    na_rep: str = "",
    float_format: str | None = None,
    datetime_format: str = "yyyy-mm-dd hh:mm",
) -> bytes:
    """Serialize one or more DataFrames to a single XLSX workbook.

    Each mapping key becomes a worksheet (detections, summary, clusters...).
    Returns a bytes payload suitable for Streamlit's download_button.
    """
    if not tables:
        raise ValueError("No tables to export.")

    buf = BytesIO()
    with pd.ExcelWriter(
        buf,
        engine="openpyxl",
        datetime_format=datetime_format,
        date_format=datetime_format,
    ) as writer:
        used = set()
        for name, df in tables.items():
            title = sheet_title(name)
            n = 2
            while title in used:
                suffix = f"_{n}"
                title = sheet_title(name)[: 31 - len(suffix)] + suffix
                n += 1
            used.add(title)
            df.to_excel(
                writer,
                sheet_name=title,
                index=index,
                na_rep=na_rep,
                float_format=float_format,
            )
    return buf.getvalue()


__all__ = ["to_excel_bytes", "sheet_title"]
