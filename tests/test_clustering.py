"""Tests for offline clustering and centroid anchors."""

from unittest.mock import patch

import numpy as np
import pytest

from hashsphere.workflows import (
    DriftScheduler,
    assign_clusters,
    build_centroid_anchors,
    cluster_positions,
)


@pytest.fixture
def two_groups(store, make_record):
    """Two tight groups far apart, inserted alternately."""
    positions = [
        (0.0, 0.0, 0.0),
        (5.0, 0.0, 0.0),
        (0.1, 0.0, 0.0),
        (5.1, 0.0, 0.0),
        (0.0, 0.1, 0.0),
    ]
    return [
        store.insert(make_record(content=f"m{i}", seed=i, position=p))
        for i, p in enumerate(positions)
    ]


class TestClusterPositions:
    def test_empty(self):
        assert cluster_positions(np.zeros((0, 3)), 0.5).size == 0

    def test_single_point(self):
        assert list(cluster_positions(np.zeros((1, 3)), 0.5)) == [1]

    def test_threshold_controls_granularity(self):
        points = np.array([[0, 0, 0], [0.2, 0, 0], [3, 0, 0]], dtype=float)
        assert len(set(cluster_positions(points, 0.5))) == 2
        assert len(set(cluster_positions(points, 10.0))) == 1


class TestAssignClusters:
    """Tests for assign_clusters."""

    def test_empty_store(self, store):
        result = assign_clusters(store)
        assert result.clusters == 0
        assert result.records_labelled == 0

    def test_labels_by_first_appearance(self, store, two_groups):
        """The first-created record's cluster is always cluster-1."""
        result = assign_clusters(store, distance_threshold=0.5)

        assert result.clusters == 2
        assert result.records_labelled == 5
        labels = [store.get(uid).cluster_name for uid in two_groups]
        assert labels == ["cluster-1", "cluster-2", "cluster-1", "cluster-2", "cluster-1"]
        assert result.labels[two_groups[1]] == "cluster-2"

    def test_rerun_is_stable(self, store, two_groups):
        assign_clusters(store, distance_threshold=0.5)
        again = assign_clusters(store, distance_threshold=0.5)
        assert again.records_labelled == 0
        assert again.clusters == 2

    def test_labelling_keeps_position(self, store, two_groups):
        before = store.get(two_groups[1])
        assign_clusters(store)
        after = store.get(two_groups[1])
        assert after.position == before.position
        assert after.meaning_hash == before.meaning_hash

    def test_tenant_scoped(self, store, make_record, other_tenant, two_groups):
        store.insert(make_record(content="theirs", seed=9, scope=other_tenant, position=(9.0, 9.0, 9.0)))

        result = assign_clusters(store, tenant=other_tenant)

        assert result.clusters == 1
        assert store.get(two_groups[0]).cluster_name is None


class TestCentroidAnchors:
    """Tests for build_centroid_anchors."""

    def test_one_anchor_per_label(self, store, two_groups):
        assign_clusters(store, distance_threshold=0.5)

        anchors = build_centroid_anchors(store.list_records())

        assert [a.anchor_id for a in anchors] == ["anchor-cluster-1", "anchor-cluster-2"]
        assert [a.label for a in anchors] == ["cluster-1", "cluster-2"]
        assert anchors[0].position == pytest.approx((0.1 / 3, 0.1 / 3, 0.0))
        assert anchors[1].position == pytest.approx((5.05, 0.0, 0.0))

    def test_unlabelled_ignored(self, store, two_groups):
        assert build_centroid_anchors(store.list_records()) == []

    def test_feeds_drift(self, store, two_groups):
        """Centroid anchors swap in as a new snapshot version."""
        assign_clusters(store, distance_threshold=0.5)
        snapshot = store.anchors.swap(build_centroid_anchors(store.list_records()))
        assert snapshot.version == 1
        assert len(snapshot) == 2


class TestClusteringWithDrift:
    """Labelling and drift writing the same records."""

    def test_labels_keep_drift_that_ran_after_read(self, store, scorer, make_record, origin_anchor):
        """A drift between clustering's read and its write is not reverted."""
        store.anchors.swap([origin_anchor])
        uid = store.insert(make_record(position=(2.0, 0.0, 0.0)))
        stale = store.list_records()

        DriftScheduler(store, scorer, gamma=1.0).run_once()
        with patch.object(store, "list_records", return_value=stale):
            result = assign_clusters(store)

        record = store.get(uid)
        assert result.records_labelled == 1
        assert record.cluster_name == "cluster-1"
        assert record.position == (0.0, 0.0, 0.0)
        assert record.anchor_energy == 1.0

    def test_drift_does_not_drop_fresh_label(self, store, scorer, make_record, origin_anchor):
        """A drift batch read before a relabel is skipped and retried next pass."""
        store.anchors.swap([origin_anchor])
        uid = store.insert(make_record(position=(2.0, 0.0, 0.0)))
        stale = store.get_many([uid])
        store.label_records({uid: "cluster-1"})
        scheduler = DriftScheduler(store, scorer, gamma=1.0)

        with patch.object(store, "get_many", return_value=stale):
            report = scheduler.run_once()

        assert report.skipped == 1
        assert report.drifted == 0
        assert store.get(uid).cluster_name == "cluster-1"
        assert store.get(uid).position == (2.0, 0.0, 0.0)

        assert scheduler.run_once().drifted == 1
        assert store.get(uid).cluster_name == "cluster-1"
        assert store.get(uid).position == (0.0, 0.0, 0.0)
