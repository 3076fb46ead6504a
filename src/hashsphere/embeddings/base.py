"""Embedder interface.

The engine consumes fixed-length float vectors and never calls a model
itself; embedders are thin async adapters the service uses to turn text
into the vector the store expects.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

from hashsphere.exceptions import DimensionMismatchError, EmbeddingError


class Embedder(ABC):
    """Async text-to-vector provider with a fixed output dimension.

    Example:
        ```python
        embedder = HashingEmbedder(dimensions=256)
        vector = await embedder.embed("deploy finished")
        vectors = await embedder.embed_batch(["a", "b"])
        assert len(vector) == embedder.dimensions
        ```
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed one text."""
        ...

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts, preserving input order."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this embedder returns."""
        ...

    def check(self, vector: Sequence[float]) -> list[float]:
        """Return the vector as a list after checking its length and values.

        Raises:
            DimensionMismatchError: If the length differs from ``dimensions``.
            EmbeddingError: If any component is NaN or infinite.
        """
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))
        values = [float(v) for v in vector]
        if not all(math.isfinite(v) for v in values):
            raise EmbeddingError("embedding contains non-finite values")
        return values
