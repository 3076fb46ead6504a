"""Background and batch workflows: anchor drift and offline clustering."""

from .clustering import (
    ClusteringResult,
    assign_clusters,
    build_centroid_anchors,
    cluster_positions,
)
from .drift import DriftReport, DriftScheduler, DriftState, drift_position

__all__ = [
    "ClusteringResult",
    "DriftReport",
    "DriftScheduler",
    "DriftState",
    "assign_clusters",
    "build_centroid_anchors",
    "cluster_positions",
    "drift_position",
]
