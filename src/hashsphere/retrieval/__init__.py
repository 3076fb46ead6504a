"""Retrieval: candidate gathering, multi-signal scoring and evidence aggregation."""

from .engine import RetrievalEngine
from .evidence import EvidenceAggregator
from .scoring import (
    clamp_unit,
    cosine_similarity,
    hybrid_score,
    proximity_score,
    ranking_key,
    recency_score,
)

__all__ = [
    "EvidenceAggregator",
    "RetrievalEngine",
    "clamp_unit",
    "cosine_similarity",
    "hybrid_score",
    "proximity_score",
    "ranking_key",
    "recency_score",
]
