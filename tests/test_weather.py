import math

import pandas as pd
import pytest

from weather import (
    add_time_parts,
    classify_days,
    tag_conditions,
    condition_profile,
    condition_summary,
)


def _weather():
    return pd.DataFrame(
        {
            "timestamp": [
                "2016-01-05 07:00",  # Tue: rain
                "2016-01-05 08:00",
                "2016-01-06 07:00",  # Wed: dry
                "2016-01-07 07:00",  # Thu: trace
                "2016-01-09 07:00",  # Sat: dry
            ],
            "precip": [0.05, 0.1, 0.0, 0.02, 0.0],
        }
    )


def _readings():
    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime(
                [
                    "2016-01-05 08:00",
                    "2016-01-05 08:30",
                    "2016-01-06 08:00",
                    "2016-01-06 08:30",
                    "2016-01-07 08:00",
                    "2016-01-09 08:00",
                ]
            ),
            "station": ["A"] * 6,
            "abs_pm": [0.5] * 6,
            "speed": [50.0, 52.0, 62.0, 64.0, 60.0, 65.0],
            "flow": [100, 110, 120, 130, 125, 60],
        }
    )


def test_add_time_parts():
    out = add_time_parts(pd.DataFrame({"timestamp": ["2016-01-05 08:05", "2016-01-09 17:30"]}))
    assert out["time_of_day"].tolist() == [485, 1050]
    assert out["weekday"].tolist() == ["Tuesday", "Saturday"]
    assert out["is_weekend"].tolist() == [False, True]
    assert out["hour"].tolist() == [8, 17]


def test_classify_days():
    days = classify_days(_weather(), min_daily_precip=0.1)
    assert list(days.columns) == ["date", "total_precip", "condition"]
    assert days["condition"].tolist() == ["rain", "dry", "trace", "dry"]
    assert days.loc[0, "total_precip"] == pytest.approx(0.15)


def test_classify_days_empty():
    assert classify_days(pd.DataFrame()).empty


def test_tag_conditions_by_date():
    tagged = tag_conditions(_readings(), classify_days(_weather()))
    assert tagged["condition"].tolist() == ["rain", "rain", "dry", "dry", "trace", "dry"]


def test_tag_conditions_unknown_day_is_nan():
    tagged = tag_conditions(_readings(), pd.DataFrame())
    assert tagged["condition"].isna().all()


def test_condition_profile_hourly_weekdays():
    tagged = tag_conditions(_readings(), classify_days(_weather()))
    prof = condition_profile(tagged, value="flow", freq="1h", weekdays_only=True)
    assert list(prof.columns) == ["condition", "time_of_day", "mean", "median", "count"]
    rows = prof.set_index("condition")
    assert set(rows.index) == {"dry", "rain"}
    assert rows.loc["rain", "time_of_day"] == 480
    assert rows.loc["rain", "mean"] == pytest.approx(105.0)
    # Saturday's 60 is excluded
    assert rows.loc["dry", "mean"] == pytest.approx(125.0)
    assert rows.loc["dry", "count"] == 2


def test_condition_profile_with_weekends():
    tagged = tag_conditions(_readings(), classify_days(_weather()))
    prof = condition_profile(tagged, value="flow", freq="30min", weekdays_only=False)
    dry = prof[prof["condition"] == "dry"].set_index("time_of_day")
    assert dry.loc[480, "mean"] == pytest.approx(90.0)
    assert dry.loc[510, "mean"] == pytest.approx(130.0)


def test_condition_summary_percent_change():
    tagged = tag_conditions(_readings(), classify_days(_weather()))
    summ = condition_summary(tagged, value="flow")
    assert set(summ["condition"]) == {"rain", "dry"}
    assert summ.attrs["pct_change_rain_vs_dry"] == pytest.approx(-16.0)
    days = dict(zip(summ["condition"], summ["days"]))
    assert days == {"rain": 1, "dry": 1}


def test_condition_summary_missing_value_column():
    tagged = tag_conditions(_readings(), classify_days(_weather()))
    summ = condition_summary(tagged, value="occupancy")
    assert summ.empty
    assert math.isnan(summ.attrs["pct_change_rain_vs_dry"])
