"""Tests for evidence aggregation."""

import math

import pytest

from hashsphere.models import MethodScores, RetrievalResult
from hashsphere.retrieval import EvidenceAggregator


@pytest.fixture
def result_at(make_record):
    """Build a RetrievalResult for a record placed at a given position."""
    counter = iter(range(1, 1000))

    def _make(position, weight):
        rank = next(counter)
        record = make_record(content=f"evidence {rank}", position=position)
        return RetrievalResult(
            record=record,
            scores=MethodScores(),
            hybrid_score=weight,
            score=weight,
            rank=rank,
        )

    return _make


class TestEvidenceAggregator:
    """Tests for EvidenceAggregator."""

    def test_empty(self):
        evidence = EvidenceAggregator().aggregate([])
        assert evidence.is_zero
        assert evidence.count == 0

    def test_orthogonal_equal_weights(self, result_at):
        results = [result_at((1.0, 0.0, 0.0), 0.5), result_at((0.0, 1.0, 0.0), 0.5)]

        evidence = EvidenceAggregator().aggregate(results)

        assert not evidence.is_zero
        assert evidence.as_tuple() == pytest.approx((1 / math.sqrt(2), 1 / math.sqrt(2), 0.0))
        assert evidence.count == 2
        assert evidence.total_weight == pytest.approx(1.0)

    def test_weights_pull_direction(self, result_at):
        results = [result_at((1.0, 0.0, 0.0), 0.9), result_at((0.0, 1.0, 0.0), 0.1)]
        evidence = EvidenceAggregator().aggregate(results)
        assert evidence.x > evidence.y > 0.0

    def test_unit_length(self, result_at):
        results = [result_at((0.3, -2.0, 0.7), 0.4), result_at((1.0, 1.0, 1.0), 0.2)]
        evidence = EvidenceAggregator().aggregate(results)
        assert math.sqrt(evidence.x**2 + evidence.y**2 + evidence.z**2) == pytest.approx(1.0)

    def test_opposite_positions_cancel(self, result_at):
        results = [result_at((1.0, 0.0, 0.0), 0.5), result_at((-1.0, 0.0, 0.0), 0.5)]

        evidence = EvidenceAggregator().aggregate(results)

        assert evidence.is_zero
        assert evidence.as_tuple() == (0.0, 0.0, 0.0)
        assert evidence.count == 2

    def test_zero_weights(self, result_at):
        results = [result_at((1.0, 0.0, 0.0), 0.0), result_at((0.0, 1.0, 0.0), 0.0)]
        evidence = EvidenceAggregator().aggregate(results)
        assert evidence.is_zero
        assert evidence.total_weight == 0.0

    def test_negative_weights_ignored(self, result_at):
        results = [result_at((1.0, 0.0, 0.0), 0.5), result_at((0.0, 1.0, 0.0), -3.0)]
        evidence = EvidenceAggregator().aggregate(results)
        assert evidence.as_tuple() == pytest.approx((1.0, 0.0, 0.0))

    def test_renormalize_changes_magnitude_not_direction(self, result_at):
        results = [result_at((2.0, 0.0, 0.0), 0.2), result_at((0.0, 2.0, 0.0), 0.6)]

        normalized = EvidenceAggregator(renormalize=True).aggregate(results)
        raw = EvidenceAggregator(renormalize=False).aggregate(results)

        assert normalized.as_tuple() == pytest.approx(raw.as_tuple())
        assert normalized.total_weight == pytest.approx(1.0)
        assert raw.total_weight == pytest.approx(0.8)
        assert raw.magnitude == pytest.approx(normalized.magnitude * 0.8)
