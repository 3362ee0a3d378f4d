import gzip
from datetime import date

import pandas as pd
import pytest

from adapters.pems_adapter import (
    load_station_5min,
    read_station_metadata,
    to_readings,
    station_5min_columns,
)

# 12 station columns + 2 lanes x 5 columns
RAW_LINES = [
    "01/05/2016 08:00:00,717000,12,405,N,ML,0.4,20,100,210,0.081,31.5,10,100,0.08,30.0,1,10,110,0.082,33.0,1",
    "01/05/2016 08:00:00,717007,12,405,N,ML,0.5,20,100,260,0.061,62.0,10,130,0.06,61.0,1,10,130,0.062,63.0,1",
    "01/05/2016 08:00:00,717010,12,405,N,OR,0.1,10,100,40,,,,,,,,,,,,",
    "01/05/2016 08:00:00,717014,12,405,N,ML,0.5,0,0,,,,,,,,,,,,,",
    "01/05/2016 08:00:00,718000,12,5,S,ML,0.5,20,100,300,0.05,66.0,10,150,0.05,66.0,1,10,150,0.05,66.0,1",
    "01/06/2016 08:00:00,717000,12,405,N,ML,0.4,20,100,200,0.08,58.0,10,100,0.08,58.0,1,10,100,0.08,58.0,1",
]

META = (
    "ID\tFwy\tDir\tDistrict\tCounty\tCity\tState_PM\tAbs_PM\tLatitude\tLongitude\tLength\tType\tLanes\tName\n"
    "717000\t405\tN\t12\t59\t36770\t1.2\t0.5\t33.6\t-117.7\t0.4\tML\t5\tJeffrey\n"
    "717007\t405\tN\t12\t59\t36770\t1.8\t1.1\t33.6\t-117.7\t0.5\tML\t4\tCulver\n"
    "717010\t405\tN\t12\t59\t36770\t1.9\t1.2\t33.6\t-117.7\t0.1\tOR\t1\tCulver On\n"
    "717014\t405\tN\t12\t59\t36770\t2.1\t1.4\t33.6\t-117.7\t0.5\tML\t4\tYale\n"
    "718000\t5\tS\t12\t59\t36770\t9.0\t\t33.6\t-117.7\t0.5\tML\t4\tNo postmile\n"
)


def _write_raw(path, lines=RAW_LINES, gz=False):
    text = "\n".join(lines) + "\n"
    if gz:
        with gzip.open(path, "wt") as f:
            f.write(text)
    else:
        path.write_text(text)


def test_station_5min_columns_names_lanes():
    cols = station_5min_columns(22)
    assert cols[:3] == ["timestamp", "station", "district"]
    assert cols[11] == "speed"
    assert cols[12] == "lane_1_samples"
    assert cols[-1] == "lane_2_observed"
    with pytest.raises(ValueError):
        station_5min_columns(5)


def test_load_station_5min_plain_and_gz(tmp_path):
    plain = tmp_path / "d12_text_station_5min_2016_01_05.txt"
    gz = tmp_path / "d12_text_station_5min_2016_01_05.txt.gz"
    _write_raw(plain)
    _write_raw(gz, gz=True)

    a = load_station_5min(plain)
    b = load_station_5min(gz)
    assert len(a) == len(RAW_LINES)
    pd.testing.assert_frame_equal(a, b)
    assert a.loc[0, "station"] == "717000"
    assert a.loc[0, "freeway"] == "405"
    assert a.loc[0, "timestamp"] == pd.Timestamp("2016-01-05 08:00:00")
    assert a.loc[0, "lane_2_speed"] == 33.0
    assert pd.isna(a.loc[3, "speed"])


def test_load_station_5min_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_station_5min(tmp_path / "nope.txt")


def test_read_station_metadata(tmp_path):
    path = tmp_path / "d12_text_meta_2016_01_01.txt"
    path.write_text(META)
    meta = read_station_metadata(path)
    # station without Abs_PM is dropped
    assert meta["station"].tolist() == ["717000", "717007", "717010", "717014"]
    assert meta["abs_pm"].tolist() == [0.5, 1.1, 1.2, 1.4]
    assert meta["lanes"].tolist() == [5, 4, 1, 4]
    assert meta.loc[0, "county"] == "59"


def test_to_readings_filters_corridor_lane_type_and_day(tmp_path):
    raw_path = tmp_path / "raw.txt"
    meta_path = tmp_path / "meta.txt"
    _write_raw(raw_path)
    meta_path.write_text(META)
    raw = load_station_5min(raw_path)
    stations = read_station_metadata(meta_path)

    out = to_readings(raw, stations, 405, "n", day=date(2016, 1, 5))
    assert list(out.columns) == ["timestamp", "station", "abs_pm", "speed", "flow", "occupancy"]
    # on-ramp filtered, missing speed dropped, other freeway and other day excluded
    assert out["station"].tolist() == ["717000", "717007"]
    assert out["abs_pm"].tolist() == [0.5, 1.1]
    assert out["speed"].tolist() == [31.5, 62.0]

    both_days = to_readings(raw, stations, "405", "N")
    assert len(both_days) == 3


def test_to_readings_empty_raw():
    out = to_readings(pd.DataFrame(), pd.DataFrame({"station": [], "abs_pm": []}), 405, "N")
    assert out.empty
