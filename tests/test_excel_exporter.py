from io import BytesIO

import pandas as pd
import pytest
from openpyxl import load_workbook

from export.excel_exporter import sheet_title, to_excel_bytes


def _read_sheet(bytes_data: bytes, name: str) -> pd.DataFrame:
    wb = load_workbook(filename=BytesIO(bytes_data))
    rows = list(wb[name].values)
    return pd.DataFrame(rows[1:], columns=rows[0])


def test_to_excel_bytes_one_sheet_per_table():
    detections = pd.DataFrame(
        {
            "timestamp": pd.to_datetime(["2016-01-05 08:00"]),
            "station": ["717000"],
            "speed": [31.5],
        }
    )
    summary = pd.DataFrame({"station": ["717000"], "days_active": [1], "avg_extent": [0.6]})
    b = to_excel_bytes({"detections": detections, "summary": summary})

    wb = load_workbook(filename=BytesIO(b))
    assert wb.sheetnames == ["detections", "summary"]
    out = _read_sheet(b, "summary")
    assert list(out.columns) == ["station", "days_active", "avg_extent"]
    assert float(out.loc[0, "avg_extent"]) == 0.6
    det = _read_sheet(b, "detections")
    assert det.loc[0, "station"] == "717000"


def test_to_excel_bytes_sheet_names_are_sanitized_and_unique():
    df = pd.DataFrame({"a": [1]})
    long = "bottleneck summary for I-405/N"
    b = to_excel_bytes({long: df, long + " again": df})
    names = load_workbook(filename=BytesIO(b)).sheetnames
    assert len(names) == 2
    assert all(len(n) <= 31 for n in names)
    assert all("/" not in n for n in names)
    assert names[0] != names[1]


def test_to_excel_bytes_requires_tables():
    with pytest.raises(ValueError):
        to_excel_bytes({})


def test_sheet_title():
    assert sheet_title("a[b]:c") == "a_b__c"
    assert sheet_title("") == "Sheet"
    assert len(sheet_title("x" * 40)) == 31
