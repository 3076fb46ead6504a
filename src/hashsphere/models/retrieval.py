"""Retrieval models - queries, per-method scores and ranked results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .base import TenantScope
from .record import MemoryRecord


class RetrievalMode(str, Enum):
    """Which retrieval method ranks the results."""

    RAG = "rag"  # Exact cosine over the ANN shortlist
    VECTOR = "vector"  # Raw ANN scores
    SPATIAL = "spatial"  # Proximity in projected space
    RESONANCE = "resonance"  # Resonance floor, ranked by anchor energy
    HYBRID = "hybrid"  # Weighted blend of all signals


class RetrievalQuery(BaseModel):
    """A single retrieval request.

    Attributes:
        text: Query text. Used for hash similarity; embedding comes separately.
        embedding: Query embedding. Required by every mode.
        tenant: Mandatory tenant scope.
        top_k: Maximum results to return.
        mode: Ranking method.
        resonance_threshold: Normalized-resonance floor. Resonance mode falls back
            to the configured default when unset; hybrid mode applies it only when set.
        radius: Spatial mode only - range query radius instead of nearest neighbours.
        min_hash_similarity: Coarse hash filter; None uses the configured floor.
        budget_ms: Deadline for the exact-cosine scan. Partial results when exceeded.
        now_ns: Reference time for recency. Defaults to the engine clock.
    """

    model_config = ConfigDict(extra="forbid")

    text: str = ""
    embedding: list[float] | None = None
    tenant: TenantScope | None = None
    top_k: int = Field(default=10, ge=1)
    mode: RetrievalMode = RetrievalMode.HYBRID
    resonance_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    radius: float | None = Field(default=None, gt=0.0)
    min_hash_similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    budget_ms: float | None = Field(default=None, gt=0.0)
    now_ns: int | None = None


class MethodScores(BaseModel):
    """Per-signal scores for one candidate, each in [0, 1]."""

    model_config = ConfigDict(extra="forbid")

    rag: float = Field(default=0.0, ge=0.0, le=1.0)
    vector: float = Field(default=0.0, ge=0.0, le=1.0)
    proximity: float = Field(default=0.0, ge=0.0, le=1.0)
    resonance: float = Field(default=0.0, ge=0.0, le=1.0)
    anchor_energy: float = Field(default=0.0, ge=0.0, le=1.0)
    recency: float = Field(default=0.0, ge=0.0, le=1.0)
    hash_similarity: float = Field(default=0.0, ge=0.0, le=1.0)


class RetrievalResult(BaseModel):
    """One ranked hit. Produced per query and never persisted.

    Attributes:
        record: The matched record.
        scores: Breakdown of every retrieval signal.
        hybrid_score: Weighted blend of the signals.
        score: The value the query mode ranked by (equals hybrid_score in hybrid mode).
        rank: 1-based position in the result list.
    """

    model_config = ConfigDict(extra="forbid")

    record: MemoryRecord
    scores: MethodScores
    hybrid_score: float
    score: float
    rank: int = Field(ge=1)

    @property
    def universe_id(self) -> str:
        return self.record.universe_id


class RetrievalResponse(BaseModel):
    """Ordered results of one query plus execution metadata."""

    model_config = ConfigDict(extra="forbid")

    mode: RetrievalMode
    results: list[RetrievalResult] = Field(default_factory=list)
    candidates_considered: int = Field(default=0, ge=0)
    partial: bool = Field(default=False, description="True when the deadline cut the scan short")

    def __len__(self) -> int:
        return len(self.results)

    @property
    def universe_ids(self) -> list[str]:
        return [r.record.universe_id for r in self.results]


class EvidenceVector(BaseModel):
    """Weighted aggregate position of a retrieved set, on the unit sphere.

    Attributes:
        x, y, z: Unit-length direction, or all zero for the sentinel.
        magnitude: Norm of the weighted sum before normalization.
        total_weight: Sum of the weights used.
        count: Number of results aggregated.
        is_zero: True for the zero-evidence sentinel.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    magnitude: float = Field(default=0.0, ge=0.0)
    total_weight: float = Field(default=0.0, ge=0.0)
    count: int = Field(default=0, ge=0)
    is_zero: bool = True

    @classmethod
    def zero(cls, count: int = 0, total_weight: float = 0.0) -> EvidenceVector:
        return cls(count=count, total_weight=total_weight)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)
