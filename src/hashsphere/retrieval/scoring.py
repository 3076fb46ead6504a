"""Per-signal scoring functions used by the retrieval engine.

Every function returns a value in [0, 1] so the hybrid blend stays
comparable across signals.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from hashsphere.config import HybridWeights
    from hashsphere.models import MemoryRecord, MethodScores, Point3


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1]; NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Exact cosine similarity with negatives clipped to 0.

    Zero-norm vectors have no direction and score 0.0.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return clamp_unit(float(va @ vb) / (na * nb))


def proximity_score(position: Point3, center: Point3) -> float:
    """exp(-euclidean distance) in the projected space."""
    return clamp_unit(math.exp(-math.dist(position, center)))


def recency_score(created_at_ns: int, now_ns: int, half_life_ns: float) -> float:
    """Exponential decay: 1.0 at age 0, 0.5 at one half-life, 0.25 at two.

    Records stamped in the future (clock skew) score 1.0.
    """
    age = now_ns - created_at_ns
    if age <= 0:
        return 1.0
    return clamp_unit(math.pow(0.5, age / half_life_ns))


def hybrid_score(scores: MethodScores, weights: HybridWeights) -> float:
    """Weighted blend of rag, resonance, proximity, recency and anchor energy."""
    return (
        weights.rag * scores.rag
        + weights.resonance * scores.resonance
        + weights.proximity * scores.proximity
        + weights.recency * scores.recency
        + weights.anchor_energy * scores.anchor_energy
    )


def ranking_key(score: float, record: MemoryRecord, hash_similarity: float) -> tuple[float, int, float, str]:
    """Sort key giving a total order: score desc, newer first, hash similarity desc, id asc."""
    return (-score, -record.created_at_ns, -hash_similarity, record.universe_id)
