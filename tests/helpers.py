"""Test helpers shared across test modules."""

from __future__ import annotations

import numpy as np

# Small embedding dimension keeps Qdrant and numpy work trivial in tests
TEST_DIM = 8


class FakeClock:
    """Deterministic nanosecond clock that ticks by ``step`` per call."""

    def __init__(self, start: int = 1_000_000, step: int = 1_000) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


def vec(seed: int, dim: int = TEST_DIM) -> list[float]:
    """Deterministic pseudo-random embedding."""
    return np.random.default_rng(seed).standard_normal(dim).tolist()
