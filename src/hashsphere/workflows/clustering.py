"""Offline clustering of record positions.

Labels live records with hierarchical clusters over their projected
positions, then derives one anchor per cluster at the cluster centroid.
Both steps are batch jobs; nothing here runs on the query path.

Example:
    ```python
    from hashsphere.workflows.clustering import assign_clusters, build_centroid_anchors

    result = assign_clusters(store, distance_threshold=0.5)
    anchors = build_centroid_anchors(store.list_records())
    store.anchors.swap(anchors)
    ```
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING, Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field
from scipy.cluster.hierarchy import fcluster, linkage

from hashsphere.models import Anchor, MemoryRecord, TenantScope

if TYPE_CHECKING:
    from hashsphere.storage import MemoryStore

logger = logging.getLogger(__name__)

CLUSTER_PREFIX = "cluster"


class ClusteringResult(BaseModel):
    """Result of a clustering run.

    Attributes:
        records_labelled: Records written back with a new label.
        clusters: Number of distinct clusters found.
        labels: Cluster label per universe_id.
    """

    model_config = ConfigDict(extra="forbid")

    records_labelled: int = Field(ge=0)
    clusters: int = Field(ge=0)
    labels: dict[str, str] = Field(default_factory=dict)


def cluster_positions(
    positions: np.ndarray,
    distance_threshold: float,
    method: Literal["single", "complete", "average", "ward"] = "average",
) -> np.ndarray:
    """1-based flat cluster ids for an (n, 3) array of positions."""
    n = positions.shape[0]
    if n == 0:
        return np.zeros(0, dtype=int)
    if n == 1:
        return np.ones(1, dtype=int)
    linkage_matrix = linkage(positions, method=method, metric="euclidean")
    return fcluster(linkage_matrix, t=distance_threshold, criterion="distance")


def assign_clusters(
    store: MemoryStore,
    distance_threshold: float = 0.5,
    tenant: TenantScope | None = None,
    method: Literal["single", "complete", "average", "ward"] = "average",
) -> ClusteringResult:
    """Label live records with hierarchical clusters of their positions.

    Labels are "cluster-<n>", numbered by the clusters' first member in
    creation order, so reruns over the same data produce the same labels.

    Args:
        store: Store to label.
        distance_threshold: Dendrogram cut height in projected-space units.
        tenant: Restrict clustering to one tenant.
        method: scipy linkage method.
    """
    records = store.list_records(tenant=tenant)
    if not records:
        return ClusteringResult(records_labelled=0, clusters=0)

    positions = np.array([r.position for r in records], dtype=np.float64)
    raw = cluster_positions(positions, distance_threshold, method=method)

    # Renumber by first appearance for stable labels.
    order: dict[int, int] = {}
    for cid in raw:
        order.setdefault(int(cid), len(order) + 1)

    labels = {
        record.universe_id: f"{CLUSTER_PREFIX}-{order[int(cid)]}"
        for record, cid in zip(records, raw, strict=True)
    }

    # Applied to the stored record at write time, not the copies read above.
    written = store.label_records(labels)
    logger.info("Clustered %d records into %d clusters (%d relabelled)", len(records), len(order), written)
    return ClusteringResult(records_labelled=written, clusters=len(order), labels=labels)


def build_centroid_anchors(records: Iterable[MemoryRecord]) -> list[Anchor]:
    """One anchor per cluster label, at the mean position of its records.

    Unlabelled and deleted records are ignored. Anchors are ordered by
    label so the snapshot order (and thus tie-breaking) is stable.
    """
    groups: dict[str, list[tuple[float, float, float]]] = defaultdict(list)
    for record in records:
        if record.cluster_name and not record.is_deleted:
            groups[record.cluster_name].append(record.position)

    anchors = []
    for label in sorted(groups):
        centroid = np.mean(np.array(groups[label], dtype=np.float64), axis=0)
        anchors.append(
            Anchor.at(
                f"anchor-{label}",
                (float(centroid[0]), float(centroid[1]), float(centroid[2])),
                label=label,
            )
        )
    return anchors
