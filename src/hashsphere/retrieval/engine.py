"""Retrieval engine: RAG, vector, spatial, resonance and hybrid ranking.

Every mode gathers candidates from one or more indexes, scores each
candidate on all signals, and ranks by the signal the mode selects:

- rag: exact cosine over the ANN shortlist (negatives clipped to 0)
- vector: raw ANN score
- spatial: proximity exp(-d) to the query's projected position
- resonance: normalized resonance above a threshold, ranked by anchor energy
- hybrid: union of rag, spatial and resonance candidates, ranked by the
  weighted blend in HybridWeights

Ties are broken by created_at_ns (newer first), then hash similarity, then
universe_id, so equal inputs always produce the same order.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hashsphere.exceptions import DimensionMismatchError, ValidationError
from hashsphere.hashing import HashDeriver, hash_similarity
from hashsphere.models import (
    MemoryRecord,
    MethodScores,
    Point3,
    RetrievalMode,
    RetrievalQuery,
    RetrievalResponse,
    RetrievalResult,
    TenantScope,
    now_ns,
    require_tenant,
)

from .scoring import (
    clamp_unit,
    cosine_similarity,
    hybrid_score,
    proximity_score,
    ranking_key,
    recency_score,
)

if TYPE_CHECKING:
    from hashsphere.config import HybridWeights, Settings
    from hashsphere.geometry import CoordinateProjector
    from hashsphere.storage import MemoryStore

logger = logging.getLogger(__name__)


@dataclass
class _Candidate:
    record: MemoryRecord
    ann_score: float | None = None
    scores: MethodScores = field(default_factory=MethodScores)


class RetrievalEngine:
    """Ranks stored records against a query.

    Args:
        store: Record store to search.
        projector: Projects the query embedding into the sphere for proximity.
        settings: Shortlist sizes, thresholds, weights and half-life.
        hasher: Derives query hashes for the coarse hash filter.
        clock: Nanosecond clock for recency; injectable for tests.

    Example:
        ```python
        engine = RetrievalEngine(store, projector, settings)
        response = engine.retrieve(
            RetrievalQuery(text="deploy failed", embedding=vec, tenant=scope, top_k=5)
        )
        for result in response.results:
            print(result.rank, result.hybrid_score, result.record.content)
        ```
    """

    def __init__(
        self,
        store: MemoryStore,
        projector: CoordinateProjector,
        settings: Settings,
        hasher: HashDeriver | None = None,
        clock: Callable[[], int] = now_ns,
    ) -> None:
        self.store = store
        self.projector = projector
        self.settings = settings
        self.hasher = hasher or HashDeriver()
        self.clock = clock

    @property
    def weights(self) -> HybridWeights:
        return self.settings.hybrid_weights

    def retrieve(self, query: RetrievalQuery) -> RetrievalResponse:
        """Run one query.

        Raises:
            MissingTenantScopeError: If the query has no tenant.
            ValidationError: If the query has no embedding.
            DimensionMismatchError: If the embedding length differs from D.
        """
        tenant = require_tenant(query.tenant, "retrieve")
        if query.embedding is None:
            raise ValidationError("embedding", "query embedding is required")
        if len(query.embedding) != self.store.embedding_dim:
            raise DimensionMismatchError(self.store.embedding_dim, len(query.embedding))

        started = time.monotonic()
        deadline = started + query.budget_ms / 1000.0 if query.budget_ms else None
        top_k = min(query.top_k, self.settings.max_top_k)
        reference_ns = query.now_ns if query.now_ns is not None else self.clock()
        q_pos = self.projector.project(query.embedding).cartesian

        candidates = self._gather(query, tenant, q_pos, top_k)
        candidates = self._hash_filter(query, candidates)

        scored: list[RetrievalResult] = []
        partial = False
        for cand in candidates:
            if deadline is not None and time.monotonic() > deadline:
                partial = True
                break
            scored.append(self._score(cand, query, q_pos, reference_ns))

        scored.sort(
            key=lambda r: ranking_key(r.score, r.record, r.scores.hash_similarity)
        )
        results = [
            r.model_copy(update={"rank": i}) for i, r in enumerate(scored[:top_k], start=1)
        ]

        if partial:
            logger.warning(
                "Retrieval deadline of %.1fms hit after %d of %d candidates",
                query.budget_ms,
                len(scored),
                len(candidates),
            )
        logger.debug(
            "Retrieved %d results (mode=%s, candidates=%d) in %.1fms",
            len(results),
            query.mode.value,
            len(candidates),
            (time.monotonic() - started) * 1000,
        )
        return RetrievalResponse(
            mode=query.mode,
            results=results,
            candidates_considered=len(scored),
            partial=partial,
        )

    # ------------------------------------------------------------------
    # Candidate gathering
    # ------------------------------------------------------------------

    def _gather(
        self,
        query: RetrievalQuery,
        tenant: TenantScope,
        q_pos: Point3,
        top_k: int,
    ) -> list[_Candidate]:
        mode = query.mode
        if mode in (RetrievalMode.RAG, RetrievalMode.VECTOR):
            return self._ann_candidates(query, tenant, top_k)
        if mode == RetrievalMode.SPATIAL:
            return self._spatial_candidates(query, tenant, q_pos, top_k)
        if mode == RetrievalMode.RESONANCE:
            threshold = self._threshold(query)
            return [
                _Candidate(record=r)
                for r in self.store.list_records(tenant=tenant)
                if r.normalized_resonance >= threshold
            ]

        # Hybrid: union in ANN, spatial, resonance order, dedup by id.
        merged: dict[str, _Candidate] = {}
        for cand in self._ann_candidates(query, tenant, top_k):
            merged[cand.record.universe_id] = cand
        for cand in self._spatial_candidates(query, tenant, q_pos, top_k):
            merged.setdefault(cand.record.universe_id, cand)
        for cand in self._resonance_shortlist(tenant):
            merged.setdefault(cand.record.universe_id, cand)

        candidates = list(merged.values())
        if query.resonance_threshold is not None:
            candidates = [
                c for c in candidates
                if c.record.normalized_resonance >= query.resonance_threshold
            ]
        return candidates

    def _threshold(self, query: RetrievalQuery) -> float:
        if query.resonance_threshold is not None:
            return query.resonance_threshold
        return self.settings.resonance_threshold

    def _ann_candidates(self, query: RetrievalQuery, tenant: TenantScope, top_k: int) -> list[_Candidate]:
        assert query.embedding is not None
        limit = max(self.settings.ann_shortlist_size, top_k)
        return [
            _Candidate(record=hit.record, ann_score=hit.score)
            for hit in self.store.vector_search(query.embedding, tenant=tenant, limit=limit)
        ]

    def _spatial_candidates(
        self,
        query: RetrievalQuery,
        tenant: TenantScope,
        q_pos: Point3,
        top_k: int,
    ) -> list[_Candidate]:
        if query.mode == RetrievalMode.SPATIAL and query.radius is not None:
            hits = self.store.spatial_range_query(q_pos, query.radius, tenant=tenant)
        else:
            k = max(self.settings.spatial_shortlist_size, top_k)
            hits = self.store.spatial_nearest(q_pos, k, tenant=tenant)
        return [_Candidate(record=hit.record) for hit in hits]

    def _resonance_shortlist(self, tenant: TenantScope) -> list[_Candidate]:
        """Records above the default resonance threshold with the highest anchor energy."""
        threshold = self.settings.resonance_threshold
        records = [
            r for r in self.store.list_records(tenant=tenant)
            if r.normalized_resonance >= threshold
        ]
        records.sort(key=lambda r: (-r.anchor_energy, r.universe_id))
        return [_Candidate(record=r) for r in records[: self.settings.resonance_shortlist_size]]

    def _hash_filter(self, query: RetrievalQuery, candidates: list[_Candidate]) -> list[_Candidate]:
        floor = (
            query.min_hash_similarity
            if query.min_hash_similarity is not None
            else self.settings.min_hash_similarity
        )
        if not query.text:
            return candidates
        meaning, energy, spin = self.hasher.content_hashes(query.text)
        kept = []
        for cand in candidates:
            sim = self._hash_similarity(cand.record, meaning, energy, spin)
            cand.scores = MethodScores(hash_similarity=sim)
            if sim >= floor:
                kept.append(cand)
        if len(kept) < len(candidates):
            logger.debug("Hash filter dropped %d of %d candidates", len(candidates) - len(kept), len(candidates))
        return kept

    @staticmethod
    def _hash_similarity(record: MemoryRecord, meaning: str, energy: str, spin: str) -> float:
        return (
            hash_similarity(record.meaning_hash, meaning)
            + hash_similarity(record.energy_hash, energy)
            + hash_similarity(record.spin_hash, spin)
        ) / 3.0

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _score(
        self,
        cand: _Candidate,
        query: RetrievalQuery,
        q_pos: Point3,
        reference_ns: int,
    ) -> RetrievalResult:
        assert query.embedding is not None
        record = cand.record
        scores = MethodScores(
            rag=cosine_similarity(query.embedding, record.embedding),
            vector=clamp_unit(cand.ann_score) if cand.ann_score is not None else 0.0,
            proximity=proximity_score(record.position, q_pos),
            resonance=clamp_unit(record.normalized_resonance),
            anchor_energy=clamp_unit(record.anchor_energy),
            recency=recency_score(
                record.created_at_ns, reference_ns, self.settings.recency_half_life_ns
            ),
            hash_similarity=cand.scores.hash_similarity,
        )
        blended = hybrid_score(scores, self.weights)
        return RetrievalResult(
            record=record,
            scores=scores,
            hybrid_score=blended,
            score=self._mode_score(query.mode, scores, blended),
            rank=1,
        )

    @staticmethod
    def _mode_score(mode: RetrievalMode, scores: MethodScores, blended: float) -> float:
        if mode == RetrievalMode.RAG:
            return scores.rag
        if mode == RetrievalMode.VECTOR:
            return scores.vector
        if mode == RetrievalMode.SPATIAL:
            return scores.proximity
        if mode == RetrievalMode.RESONANCE:
            return scores.anchor_energy
        return blended
