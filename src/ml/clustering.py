"""K-means clustering of bottleneck characteristics.

Core flow:
    1. Join per-bottleneck summary metrics with station metadata.
    2. One-hot encode categorical station attributes (county, city) and
       standard-scale numeric measures (median-imputed).
    3. Fit KMeans on the transformed matrix.

Cluster centres are reported back in original units (mean of each numeric
feature per cluster) so they can be read without undoing the scaling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import pandas as pd
from sklearn.cluster import KMeans
from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from utils.log import setup_logger

logger = setup_logger(__name__)

DEFAULT_NUMERIC = (
    "days_active",
    "avg_extent",
    "avg_delay",
    "avg_duration",
    "length",
    "lanes",
)
DEFAULT_CATEGORICAL = ("county", "city")


@dataclass
class ClusterResult:
    labeled: pd.DataFrame
    centers: pd.DataFrame
    inertia: float
    k: int
    numeric: List[str]
    categorical: List[str]


def prepare_features(
    summary: pd.DataFrame,
    stations: pd.DataFrame | None = None,
    numeric: Sequence[str] = DEFAULT_NUMERIC,
    categorical: Sequence[str] = DEFAULT_CATEGORICAL,
) -> Tuple[pd.DataFrame, List[str], List[str]]:
    """
    Join summary rows with station metadata and pick usable feature columns.

    Returns:
        (frame, numeric columns, categorical columns). Columns absent from the
        join, or numeric columns with no values at all, are left out.
    """
    if summary is None or summary.empty:
        return pd.DataFrame(), [], []
    if "station" not in summary.columns:
        raise ValueError("summary must contain a 'station' column")

    df = summary.copy()
    df["station"] = df["station"].astype(str)
    if stations is not None and not stations.empty:
        meta = stations.copy()
        meta["station"] = meta["station"].astype(str)
        extra = [c for c in meta.columns if c not in df.columns or c == "station"]
        df = df.merge(meta.loc[:, extra], on="station", how="left")

    num_cols: List[str] = []
    for col in numeric:
        if col not in df.columns:
            continue
        df[col] = pd.to_numeric(df[col], errors="coerce")
        if df[col].notna().any():
            num_cols.append(col)
    cat_cols: List[str] = []
    for col in categorical:
        if col not in df.columns:
            continue
        df[col] = df[col].fillna("unknown").astype(str).replace("", "unknown")
        cat_cols.append(col)

    if not num_cols and not cat_cols:
        raise ValueError("No usable feature columns for clustering")
    return df, num_cols, cat_cols


def _preprocessor(num_cols: List[str], cat_cols: List[str]) -> ColumnTransformer:
    transformers = []
    if num_cols:
        transformers.append(
            (
                "num",
                Pipeline(
                    [
                        ("impute", SimpleImputer(strategy="median")),
                        ("scale", StandardScaler()),
                    ]
                ),
                num_cols,
            )
        )
    if cat_cols:
        transformers.append(("cat", OneHotEncoder(handle_unknown="ignore"), cat_cols))
    return ColumnTransformer(transformers, remainder="drop")


def cluster_bottlenecks(
    summary: pd.DataFrame,
    stations: pd.DataFrame | None = None,
    k: int = 4,
    random_state: int = 0,
    numeric: Sequence[str] = DEFAULT_NUMERIC,
    categorical: Sequence[str] = DEFAULT_CATEGORICAL,
) -> ClusterResult:
    """Fit k-means on bottleneck summaries; raises ValueError when rows < k."""
    if k < 1:
        raise ValueError(f"k must be >= 1 (got {k})")
    df, num_cols, cat_cols = prepare_features(summary, stations, numeric, categorical)
    if len(df) < k:
        raise ValueError(f"Need at least k={k} bottlenecks to cluster (have {len(df)})")

    pipe = Pipeline(
        [
            ("prep", _preprocessor(num_cols, cat_cols)),
            ("kmeans", KMeans(n_clusters=k, n_init=10, random_state=random_state)),
        ]
    )
    labels = pipe.fit_predict(df[num_cols + cat_cols])
    labeled = df.assign(cluster=labels.astype(int))

    agg_cols = num_cols or []
    centers = (
        labeled.groupby("cluster")[agg_cols].mean()
        if agg_cols
        else pd.DataFrame(index=pd.Index(sorted(set(labels)), name="cluster"))
    )
    centers = centers.assign(size=labeled.groupby("cluster").size()).reset_index()
    inertia = float(pipe.named_steps["kmeans"].inertia_)
    logger.info("KMeans k=%d on %d bottlenecks, inertia=%.3f", k, len(df), inertia)
    return ClusterResult(
        labeled=labeled,
        centers=centers,
        inertia=inertia,
        k=k,
        numeric=num_cols,
        categorical=cat_cols,
    )


def elbow_curve(
    summary: pd.DataFrame,
    stations: pd.DataFrame | None = None,
    k_values: Iterable[int] = range(1, 9),
    random_state: int = 0,
) -> pd.DataFrame:
    """Within-cluster sum of squares for each k (k larger than the row count is skipped)."""
    df, num_cols, cat_cols = prepare_features(summary, stations)
    rows = []
    if df.empty:
        return pd.DataFrame(columns=["k", "inertia"])
    X = _preprocessor(num_cols, cat_cols).fit_transform(df[num_cols + cat_cols])
    for k in k_values:
        if k < 1 or k > len(df):
            continue
        km = KMeans(n_clusters=k, n_init=10, random_state=random_state).fit(X)
        rows.append({"k": int(k), "inertia": float(km.inertia_)})
    return pd.DataFrame(rows, columns=["k", "inertia"])


__all__ = [
    "ClusterResult",
    "prepare_features",
    "cluster_bottlenecks",
    "elbow_curve",
]
