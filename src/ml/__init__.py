"""Clustering of bottleneck characteristics."""

from .clustering import cluster_bottlenecks, elbow_curve, prepare_features  # noqa: F401

__all__ = ["cluster_bottlenecks", "elbow_curve", "prepare_features"]
