"""Evidence aggregation over a retrieved set.

E* = sum_i(w_i * position_i) / ||sum_i(w_i * position_i)||

with w_i the hybrid score of result i, optionally renormalized to sum to
one first. The result is a direction on the unit sphere summarizing where
the evidence points. A set with no usable weight, or whose weighted
positions cancel out, yields the zero sentinel instead of a division by
zero.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from hashsphere.models import EvidenceVector, RetrievalResult

logger = logging.getLogger(__name__)


class EvidenceAggregator:
    """Combines result positions into one weighted direction.

    Args:
        renormalize: Scale weights to sum to 1 before aggregating. The
            direction is the same either way; the reported magnitude differs.
    """

    def __init__(self, renormalize: bool = True) -> None:
        self.renormalize = renormalize

    def aggregate(self, results: Sequence[RetrievalResult]) -> EvidenceVector:
        if not results:
            return EvidenceVector.zero()

        weights = np.array([max(0.0, r.hybrid_score) for r in results], dtype=np.float64)
        positions = np.array([r.record.position for r in results], dtype=np.float64)
        total = float(weights.sum())
        if total <= 0.0 or not np.isfinite(total):
            logger.debug("Evidence over %d results has zero total weight", len(results))
            return EvidenceVector.zero(count=len(results))
        if self.renormalize:
            weights = weights / total

        combined = weights @ positions
        norm = float(np.linalg.norm(combined))
        if norm == 0.0 or not np.isfinite(norm):
            logger.debug("Evidence over %d results cancels to the origin", len(results))
            return EvidenceVector.zero(count=len(results), total_weight=float(weights.sum()))

        direction = combined / norm
        return EvidenceVector(
            x=float(direction[0]),
            y=float(direction[1]),
            z=float(direction[2]),
            magnitude=norm,
            total_weight=float(weights.sum()),
            count=len(results),
            is_zero=False,
        )
