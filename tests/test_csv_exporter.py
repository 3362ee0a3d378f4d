from datetime import date

import pandas as pd

from export.csv_exporter import (
    PEMS_DATE_FORMAT,
    corridor_filename,
    export_tables,
    safe_filename,
    to_csv_bytes,
)


def test_to_csv_bytes_basic():
    df = pd.DataFrame({"station": ["717000", "717007"], "avg_delay": [3.14, None]})
    b = to_csv_bytes(df)
    assert isinstance(b, (bytes, bytearray))
    s = b.decode("utf-8")
    assert s.splitlines() == ["station,avg_delay", "717000,3.14", "717007,"]


def test_to_csv_bytes_columns_and_rename():
    df = pd.DataFrame({"a": [1], "b": [2], "c": [3]})
    b = to_csv_bytes(df, columns=["c", "a", "missing"], rename={"a": "A"}, index=False)
    s = b.decode("utf-8")
    assert s.splitlines() == ["c,A", "3,1"]


def test_to_csv_bytes_pems_date_format():
    df = pd.DataFrame(
        {"timestamp": pd.to_datetime(["2016-01-05 08:05"]), "station": ["717000"]}
    )
    s = to_csv_bytes(df, date_format=PEMS_DATE_FORMAT).decode("utf-8")
    assert "01/05/2016 08:05:00,717000" in s


def test_safe_filename_edgecases():
    assert safe_filename("Bottleneck summary I-405") == "Bottleneck_summary_I-405.csv"
    fn = safe_filename("weird/.. name*?", ext="xlsx")
    assert "/" not in fn and "*" not in fn
    assert fn.endswith(".xlsx")
    assert safe_filename("???") == "export.csv"


def test_corridor_filename():
    assert (
        corridor_filename("bottlenecks", 405, "n", date(2016, 1, 5))
        == "bottlenecks_I405-N_2016-01-05.csv"
    )
    assert corridor_filename("summary", "5", "S", ext="xlsx") == "summary_I5-S.xlsx"


def test_export_tables_writes_each_frame(tmp_path):
    tables = {
        "detections": pd.DataFrame({"station": ["1"], "speed": [30.0]}),
        "summary": pd.DataFrame({"station": ["1"], "days_active": [1]}),
    }
    paths = export_tables(tables, tmp_path / "out")
    assert [p.name for p in paths] == ["detections.csv", "summary.csv"]
    back = pd.read_csv(paths[1], dtype={"station": str})
    assert back["days_active"].tolist() == [1]


def test_export_tables_keeps_corridor_filenames(tmp_path):
    df = pd.DataFrame({"station": ["1"]})
    tables = {
        corridor_filename("bottlenecks", 405, "n"): df,
        corridor_filename("summary", 405, "n"): df,
    }
    paths = export_tables(tables, tmp_path)
    assert [p.name for p in paths] == ["bottlenecks_I405-N.csv", "summary_I405-N.csv"]
    assert all(p.exists() for p in paths)
