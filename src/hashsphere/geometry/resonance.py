"""Resonance scoring and anchor energy.

Raw resonance of a position:

    R = sin(a * x) + cos(b * y) + tan(c * z)

with a = pi/4, b = e/3 and c = golden_ratio/2 by default. The tangent term
has poles at c * z = pi/2 + k * pi; near them it is clamped to a large
finite bound so that R is always finite.

Normalized resonance is sigmoid(R), kept strictly inside (0, 1). It is
non-decreasing in R, and strictly increasing only for |R| below about
34.5; beyond that it sits on the clip plateau at 1e-15 or 1 - 1e-15.

Anchor energy toward anchor j is exp(-beta * ||p - anchor_j||^2). The
nearest anchor is found by a linear scan; anchor sets are small.
"""

from __future__ import annotations

import logging
import math
import sys
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from hashsphere.config import ResonanceCoefficients, Settings
    from hashsphere.models import AnchorSnapshot, Point3

logger = logging.getLogger(__name__)

# Sigmoid output is clipped into [_SIGMOID_EPS, 1 - _SIGMOID_EPS]; outside
# roughly |R| > 34 the float sigmoid would otherwise round to exactly 0 or 1.
_SIGMOID_EPS = 1e-15

# Smallest positive energy; exp() underflows to 0.0 for far-away anchors.
_MIN_ENERGY = sys.float_info.min


def sigmoid(value: float) -> float:
    """Numerically stable logistic function, strictly inside (0, 1).

    Non-decreasing everywhere. Outputs are clipped to [1e-15, 1 - 1e-15], so
    every value above about 34.5 maps to 1 - 1e-15 and every value below
    about -34.5 maps to 1e-15. Near a clamped tangent pole R can reach
    tan_clamp, so high-resonance records tie on the plateau.
    """
    if math.isnan(value):
        return 0.5
    if value >= 0:
        out = 1.0 / (1.0 + math.exp(-value))
    else:
        e = math.exp(value)
        out = e / (1.0 + e)
    return min(1.0 - _SIGMOID_EPS, max(_SIGMOID_EPS, out))


class ResonanceScorer:
    """Computes raw resonance, its normalized form, and anchor energy.

    Attributes:
        a, b, c: Resonance coefficients.
        beta: Anchor energy sharpness.
        tan_clamp: Magnitude bound for the tangent term.
    """

    def __init__(
        self,
        a: float = math.pi / 4.0,
        b: float = math.e / 3.0,
        c: float = (1.0 + math.sqrt(5.0)) / 4.0,
        beta: float = 1.0,
        tan_clamp: float = 1e6,
    ) -> None:
        if beta <= 0:
            raise ValueError(f"beta must be positive, got {beta}")
        if tan_clamp <= 0:
            raise ValueError(f"tan_clamp must be positive, got {tan_clamp}")
        self.a = a
        self.b = b
        self.c = c
        self.beta = beta
        self.tan_clamp = tan_clamp

    @classmethod
    def from_coefficients(
        cls,
        coefficients: ResonanceCoefficients,
        beta: float = 1.0,
        tan_clamp: float = 1e6,
    ) -> ResonanceScorer:
        return cls(
            a=coefficients.a,
            b=coefficients.b,
            c=coefficients.c,
            beta=beta,
            tan_clamp=tan_clamp,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> ResonanceScorer:
        return cls.from_coefficients(
            settings.resonance,
            beta=settings.anchor_beta,
            tan_clamp=settings.tan_clamp,
        )

    def _clamped_tan(self, angle: float) -> float:
        t = math.tan(angle)
        if math.isfinite(t) and abs(t) <= self.tan_clamp:
            return t
        logger.debug("Clamping tan(%r) near pole", angle)
        if math.isnan(t):
            return 0.0
        return math.copysign(self.tan_clamp, t)

    def score(self, x: float, y: float, z: float) -> float:
        """Raw resonance R at (x, y, z). Always finite."""
        sin_term = math.sin(self.a * x) if math.isfinite(x) else 0.0
        cos_term = math.cos(self.b * y) if math.isfinite(y) else 0.0
        tan_term = self._clamped_tan(self.c * z) if math.isfinite(z) else 0.0
        return sin_term + cos_term + tan_term

    def normalize(self, raw: float) -> float:
        """Sigmoid of the raw resonance, in (0, 1) and monotonic in raw."""
        return sigmoid(raw)

    def score_normalized(self, x: float, y: float, z: float) -> float:
        return self.normalize(self.score(x, y, z))

    def energy(self, position: Point3, anchor_position: Point3) -> float:
        """exp(-beta * squared distance), floored so it stays positive."""
        d2 = sum((p - q) ** 2 for p, q in zip(position, anchor_position, strict=True))
        return max(_MIN_ENERGY, math.exp(-self.beta * d2))

    def anchor_energy(
        self,
        position: Point3,
        anchors: AnchorSnapshot,
    ) -> tuple[float, str | None]:
        """Energy toward the nearest anchor and that anchor's id.

        Ties go to the anchor listed first in the snapshot. With no anchors
        the origin stands in for the anchor set and the id is None.
        """
        if not anchors:
            return self.energy(position, (0.0, 0.0, 0.0)), None

        deltas = anchors.positions - np.asarray(position, dtype=np.float64)
        d2 = np.einsum("ij,ij->i", deltas, deltas)
        idx = int(np.argmin(d2))
        energy = max(_MIN_ENERGY, math.exp(-self.beta * float(d2[idx])))
        return energy, anchors.anchors[idx].anchor_id
