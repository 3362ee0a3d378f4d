import pandas as pd
import pytest

from ml.clustering import cluster_bottlenecks, elbow_curve, prepare_features


def _summary():
    # two obvious groups: short/light vs. long/heavy bottlenecks
    return pd.DataFrame(
        {
            "station": ["1", "2", "3", "4", "5", "6"],
            "days_active": [2, 3, 2, 20, 21, 19],
            "avg_extent": [0.2, 0.3, 0.25, 3.0, 3.2, 2.9],
            "avg_delay": [float("nan")] * 6,
            "avg_duration": [10.0, 12.0, 11.0, 95.0, 100.0, 90.0],
        }
    )


def _stations():
    return pd.DataFrame(
        {
            "station": ["1", "2", "3", "4", "5", "6"],
            "county": ["Orange"] * 6,
            "city": ["Irvine", "Irvine", "", "Costa Mesa", "Costa Mesa", None],
            "length": [0.5] * 6,
            "lanes": [4, 4, 4, 5, 5, 5],
        }
    )


def test_prepare_features_drops_empty_numeric_and_fills_categories():
    df, num, cat = prepare_features(_summary(), _stations())
    assert "avg_delay" not in num
    assert num == ["days_active", "avg_extent", "avg_duration", "length", "lanes"]
    assert cat == ["county", "city"]
    assert df.loc[2, "city"] == "unknown"
    assert df.loc[5, "city"] == "unknown"


def test_prepare_features_requires_station():
    with pytest.raises(ValueError):
        prepare_features(pd.DataFrame({"days_active": [1]}))


def test_cluster_bottlenecks_separates_groups():
    res = cluster_bottlenecks(_summary(), _stations(), k=2)
    labels = res.labeled["cluster"].tolist()
    assert len(set(labels[:3])) == 1
    assert len(set(labels[3:])) == 1
    assert labels[0] != labels[3]
    assert res.k == 2
    assert res.inertia >= 0
    assert res.centers["size"].sum() == 6
    assert "avg_extent" in res.centers.columns


def test_cluster_bottlenecks_too_few_rows():
    with pytest.raises(ValueError):
        cluster_bottlenecks(_summary(), k=7)
    with pytest.raises(ValueError):
        cluster_bottlenecks(_summary(), k=0)


def test_elbow_curve_skips_k_above_rows():
    curve = elbow_curve(_summary(), _stations(), k_values=range(1, 9))
    assert curve["k"].tolist() == [1, 2, 3, 4, 5, 6]
    inertia = curve["inertia"].tolist()
    assert inertia[0] >= inertia[1] >= inertia[-1]


def test_elbow_curve_empty():
    assert elbow_curve(pd.DataFrame()).empty
