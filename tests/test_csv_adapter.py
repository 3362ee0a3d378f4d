import pandas as pd
import pytest

from adapters.csv_adapter import read_csv_tables, get_last_load_stats, normalize_readings


def _write_corridor(dirpath, readings=None):
    pd.DataFrame(
        {
            "station": [717000, 717007],
            "freeway": [405, 405],
            "direction": ["N", "N"],
            "county": ["Orange", "Orange"],
            "city": ["Irvine", "Irvine"],
            "abs_pm": [0.5, 1.1],
            "length": [0.4, 0.5],
            "lanes": [5, 4],
        }
    ).to_csv(dirpath / "stations.csv", index=False)
    if readings is None:
        readings = pd.DataFrame(
            {
                "timestamp": ["2016-01-05 08:00:00", "2016-01-05 08:00:00"],
                "station": [717000, 717007],
                "abs_pm": [0.5, 1.1],
                "speed": [31.2, 60.4],
                "flow": [95, 140],
            }
        )
    readings.to_csv(dirpath / "readings.csv", index=False)


def test_read_csv_tables_happy_path(tmp_path):
    _write_corridor(tmp_path)
    pd.DataFrame(
        {"timestamp": ["2016-01-05 07:00", "2016-01-05 08:00"], "precip": [0.1, "T"]}
    ).to_csv(tmp_path / "weather.csv", index=False)

    tables = read_csv_tables(tmp_path)
    assert set(tables) == {"stations", "readings", "bottleneck_summary", "weather"}
    rd = tables["readings"]
    assert rd["station"].tolist() == ["717000", "717007"]
    assert pd.api.types.is_datetime64_any_dtype(rd["timestamp"])
    assert tables["bottleneck_summary"].empty
    assert tables["weather"]["precip"].tolist() == [0.1, 0.0]

    stats = get_last_load_stats()
    assert stats["readings"]["rows_valid"] == 2
    assert stats["bottleneck_summary"]["rows_read"] == 0


def test_read_csv_tables_bad_readings_fail_fast(tmp_path):
    bad = pd.DataFrame(
        {
            "timestamp": ["2016-01-05 08:00:00", "not a time"],
            "station": [717000, 717007],
            "abs_pm": [0.5, 1.1],
            "speed": [31.2, None],
        }
    )
    _write_corridor(tmp_path, bad)
    with pytest.raises(ValueError) as e:
        read_csv_tables(tmp_path)
    assert "readings validation failed" in str(e.value)
    stats = get_last_load_stats()
    assert "error" in stats["readings"]
    assert stats["readings"]["rows_valid"] == 0


def test_read_csv_tables_unknown_station(tmp_path):
    readings = pd.DataFrame(
        {
            "timestamp": ["2016-01-05 08:00:00"],
            "station": [999999],
            "abs_pm": [3.0],
            "speed": [55.0],
        }
    )
    _write_corridor(tmp_path, readings)
    with pytest.raises(ValueError) as e:
        read_csv_tables(tmp_path)
    assert "Cross-table validation failed" in str(e.value)
    assert get_last_load_stats()["__cross_table__"]["errors"]


def test_normalize_readings_counts():
    df = pd.DataFrame(
        {
            "timestamp": ["2016-01-05 08:00:00", "2016-01-05 08:00:00"],
            "station": ["A", "B"],
            "abs_pm": [0.0, None],
            "speed": [-1, 50],
        }
    )
    with pytest.raises(ValueError) as e:
        normalize_readings(df)
    msg = str(e.value)
    assert "'bad_abs_pm': 1" in msg
    assert "'bad_speed_negative': 1" in msg
