"""Tests for the retrieval engine and scoring functions."""

import math

import pytest

from hashsphere.config import HybridWeights, Settings
from hashsphere.exceptions import DimensionMismatchError, MissingTenantScopeError, ValidationError
from hashsphere.models import MethodScores, RetrievalMode, RetrievalQuery, TenantScope
from hashsphere.retrieval import (
    RetrievalEngine,
    cosine_similarity,
    hybrid_score,
    proximity_score,
    ranking_key,
    recency_score,
)

from helpers import TEST_DIM, vec

AXIS_POINTS = [(1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)]


@pytest.fixture
def engine(store, projector, settings, clock) -> RetrievalEngine:
    return RetrievalEngine(store, projector, settings, clock=clock)


@pytest.fixture
def populated(store, make_record):
    """Five records with embeddings vec(0)..vec(4); returns their ids in seed order."""
    return [store.insert(make_record(content=f"memory number {i}", seed=i)) for i in range(5)]


@pytest.fixture
def axis_records(store, make_record, origin_anchor):
    """Records on the three unit axes around an origin anchor."""
    store.anchors.swap([origin_anchor])
    return [
        store.insert(make_record(content=f"axis {i}", seed=i, position=p))
        for i, p in enumerate(AXIS_POINTS)
    ]


def _query(tenant, seed=3, **kwargs) -> RetrievalQuery:
    kwargs.setdefault("text", "")
    return RetrievalQuery(embedding=vec(seed), tenant=tenant, **kwargs)


class TestScoringFunctions:
    """Tests for the per-signal score functions."""

    def test_cosine_identical(self):
        assert cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)

    def test_cosine_negative_clipped(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0

    def test_cosine_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_proximity(self):
        assert proximity_score((0.0, 0.0, 0.0), (0.0, 0.0, 0.0)) == 1.0
        assert proximity_score((1.0, 0.0, 0.0), (0.0, 0.0, 0.0)) == pytest.approx(math.exp(-1))

    def test_recency_half_life(self):
        assert recency_score(0, 0, 100.0) == 1.0
        assert recency_score(0, 100, 100.0) == pytest.approx(0.5)
        assert recency_score(0, 200, 100.0) == pytest.approx(0.25)

    def test_recency_future_record(self):
        assert recency_score(500, 100, 100.0) == 1.0

    def test_hybrid_score_uses_weights(self):
        scores = MethodScores(rag=1.0, resonance=1.0, proximity=1.0, recency=1.0, anchor_energy=1.0)
        assert hybrid_score(scores, HybridWeights()) == pytest.approx(1.0)
        only_rag = MethodScores(rag=1.0)
        assert hybrid_score(only_rag, HybridWeights()) == pytest.approx(0.35)

    def test_ranking_key_tie_breaks(self, make_record):
        old = make_record(content="old", created_at_ns=100)
        new = make_record(content="new", created_at_ns=200)
        a = make_record(content="a", created_at_ns=300)
        b = make_record(content="b", created_at_ns=300)

        # Newer first on equal score
        assert ranking_key(0.5, new, 0.0) < ranking_key(0.5, old, 0.0)
        # Higher hash similarity first on equal score and time
        assert ranking_key(0.5, a, 0.9) < ranking_key(0.5, b, 0.1)
        # universe_id ascending as the last resort
        first, second = sorted([a, b], key=lambda r: r.universe_id)
        assert ranking_key(0.5, first, 0.1) < ranking_key(0.5, second, 0.1)
        # Score dominates everything
        assert ranking_key(0.9, old, 0.0) < ranking_key(0.1, new, 1.0)


class TestValidation:
    """Input validation before any index is touched."""

    def test_missing_tenant(self, engine):
        with pytest.raises(MissingTenantScopeError):
            engine.retrieve(RetrievalQuery(embedding=vec(0)))

    def test_blank_tenant(self, engine):
        with pytest.raises(MissingTenantScopeError):
            engine.retrieve(RetrievalQuery(embedding=vec(0), tenant=TenantScope(user_id="")))

    def test_missing_embedding(self, engine, tenant):
        with pytest.raises(ValidationError):
            engine.retrieve(RetrievalQuery(text="hi", tenant=tenant))

    def test_dimension_mismatch(self, engine, tenant):
        with pytest.raises(DimensionMismatchError):
            engine.retrieve(RetrievalQuery(embedding=[0.1] * (TEST_DIM + 3), tenant=tenant))


class TestModes:
    """Tests for each retrieval mode."""

    @pytest.mark.parametrize("mode", list(RetrievalMode))
    def test_empty_store(self, engine, tenant, mode):
        response = engine.retrieve(_query(tenant, mode=mode))
        assert response.results == []
        assert response.mode == mode
        assert not response.partial

    def test_rag(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.RAG, top_k=3))

        assert len(response) == 3
        top = response.results[0]
        assert top.universe_id == populated[3]
        assert top.scores.rag == pytest.approx(1.0)
        assert top.score == top.scores.rag
        assert [r.rank for r in response.results] == [1, 2, 3]
        scores = [r.score for r in response.results]
        assert scores == sorted(scores, reverse=True)

    def test_vector(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.VECTOR, top_k=2))
        top = response.results[0]
        assert top.universe_id == populated[3]
        assert top.score == top.scores.vector
        assert top.scores.vector == pytest.approx(1.0, abs=1e-5)

    def test_spatial_nearest(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.SPATIAL, top_k=1))
        assert response.universe_ids == [populated[3]]
        assert response.results[0].score == pytest.approx(1.0)

    def test_spatial_radius(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.SPATIAL, radius=1e-6))
        assert response.universe_ids == [populated[3]]

    def test_hybrid_default(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant))
        assert response.mode == RetrievalMode.HYBRID
        assert set(response.universe_ids) == set(populated)
        for result in response.results:
            assert result.score == result.hybrid_score
            assert 0.0 <= result.hybrid_score <= 1.0

    def test_top_k_beyond_candidates(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.RAG, top_k=50))
        assert len(response) == len(populated)

    def test_top_k_capped(self, store, projector, tenant, populated, clock):
        settings = Settings(_env_file=None, embedding_dim=TEST_DIM, default_top_k=2, max_top_k=2)
        engine = RetrievalEngine(store, projector, settings, clock=clock)
        response = engine.retrieve(_query(tenant, top_k=50))
        assert len(response) == 2

    def test_tenant_isolation(self, engine, store, make_record, tenant, other_tenant):
        mine = store.insert(make_record(content="mine", seed=3))
        store.insert(make_record(content="theirs", seed=3, scope=other_tenant))

        for mode in RetrievalMode:
            response = engine.retrieve(_query(tenant, mode=mode, resonance_threshold=0.0001))
            assert response.universe_ids == [mine], mode


class TestResonanceRetrieval:
    """Resonance filtering and anchor-energy ranking."""

    def test_anchor_energy_on_unit_axes(self, store, axis_records):
        for uid in axis_records:
            assert store.get(uid).anchor_energy == pytest.approx(math.exp(-1))

    def test_normalized_resonance_on_unit_axes(self, store, axis_records):
        values = [store.get(uid).normalized_resonance for uid in axis_records]
        assert values == pytest.approx([0.8465, 0.6496, 0.8854], abs=1e-3)

    def test_high_threshold_returns_nothing(self, engine, tenant, axis_records):
        for mode in (RetrievalMode.HYBRID, RetrievalMode.RESONANCE):
            response = engine.retrieve(_query(tenant, mode=mode, resonance_threshold=0.99))
            assert response.results == []

    def test_threshold_filters_and_ties_prefer_newer(self, engine, tenant, axis_records):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.RESONANCE, resonance_threshold=0.7))

        # Equal anchor energy: the z record (inserted last) wins the tie
        assert response.universe_ids == [axis_records[2], axis_records[0]]
        assert all(r.score == pytest.approx(math.exp(-1)) for r in response.results)

    def test_default_threshold(self, engine, tenant, axis_records):
        response = engine.retrieve(_query(tenant, mode=RetrievalMode.RESONANCE))
        assert len(response) == 3

    @pytest.mark.parametrize("mode", [RetrievalMode.RESONANCE, RetrievalMode.HYBRID])
    def test_lookalike_tenant_sees_nothing(self, engine, store, make_record, mode):
        """A scope with org "personal" cannot reach the personal records of the same user."""
        owner = TenantScope(user_id="bob")
        store.insert(make_record(content="secret payroll", scope=owner, position=(1.0, 0.0, 0.0)))

        intruder = TenantScope(user_id="bob", org_id="personal")
        response = engine.retrieve(_query(intruder, mode=mode, resonance_threshold=0.01))

        assert response.results == []


class TestHashFilter:
    """The coarse hash pre-filter."""

    def test_exact_text_survives_strict_floor(self, engine, store, make_record, tenant):
        target = store.insert(make_record(content="alpha release notes", seed=0))
        store.insert(make_record(content="beta rollout plan", seed=1))
        store.insert(make_record(content="gamma incident review", seed=2))

        response = engine.retrieve(
            _query(tenant, seed=0, text="alpha release notes", min_hash_similarity=1.0)
        )

        assert response.universe_ids == [target]
        assert response.results[0].scores.hash_similarity == 1.0

    def test_no_text_skips_filter(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, text="", min_hash_similarity=1.0))
        assert len(response) == len(populated)


class TestDeterminismAndBudget:
    """Ranking stability and the deadline."""

    def test_hybrid_is_deterministic(self, engine, tenant, populated):
        query = _query(tenant, text="memory number", now_ns=10**9)
        first = engine.retrieve(query)
        second = engine.retrieve(query)

        assert first.universe_ids == second.universe_ids
        assert [r.hybrid_score for r in first.results] == [r.hybrid_score for r in second.results]

    def test_budget_exceeded_marks_partial(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, budget_ms=1e-6))

        assert response.partial
        assert response.candidates_considered < len(populated)
        scores = [r.score for r in response.results]
        assert scores == sorted(scores, reverse=True)

    def test_generous_budget_is_complete(self, engine, tenant, populated):
        response = engine.retrieve(_query(tenant, budget_ms=60_000))
        assert not response.partial
        assert response.candidates_considered == len(populated)
