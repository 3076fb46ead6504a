"""LRU cache in front of any Embedder.

Re-ingesting or re-querying the same text is common (retries, repeated
queries); the cache keys on the SHA-256 of the text so large inputs do not
bloat the key table.
"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict

from pydantic import BaseModel, ConfigDict, Field

from .base import Embedder

logger = logging.getLogger(__name__)


class CacheStats(BaseModel):
    """Counters for an embedding cache."""

    model_config = ConfigDict(extra="forbid")

    hits: int = Field(ge=0)
    misses: int = Field(ge=0)
    size: int = Field(ge=0)
    max_size: int = Field(ge=0)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class CachedEmbedder(Embedder):
    """Caches vectors from a wrapped embedder with least-recently-used eviction.

    Args:
        embedder: Embedder to wrap.
        cache_size: Maximum cached vectors; 0 disables caching.
    """

    def __init__(self, embedder: Embedder, cache_size: int = 1000) -> None:
        if cache_size < 0:
            raise ValueError(f"cache_size must be non-negative, got {cache_size}")
        self._inner = embedder
        self._max = cache_size
        self._entries: OrderedDict[str, list[float]] = OrderedDict()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _key(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def _lookup(self, key: str) -> list[float] | None:
        vector = self._entries.get(key)
        if vector is None:
            self._misses += 1
            return None
        self._hits += 1
        self._entries.move_to_end(key)
        return vector

    def _remember(self, key: str, vector: list[float]) -> None:
        self._entries[key] = vector
        self._entries.move_to_end(key)
        while len(self._entries) > self._max:
            self._entries.popitem(last=False)

    async def embed(self, text: str) -> list[float]:
        if self._max == 0:
            return await self._inner.embed(text)
        key = self._key(text)
        cached = self._lookup(key)
        if cached is not None:
            return list(cached)
        vector = await self._inner.embed(text)
        self._remember(key, vector)
        return list(vector)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch, sending only cache misses to the wrapped embedder."""
        if not texts:
            return []
        if self._max == 0:
            return await self._inner.embed_batch(texts)

        keys = [self._key(t) for t in texts]
        found: dict[str, list[float]] = {}
        missing: dict[str, str] = {}
        for key, text in zip(keys, texts, strict=True):
            if key in found or key in missing:
                continue
            cached = self._lookup(key)
            if cached is None:
                missing[key] = text
            else:
                found[key] = cached

        if missing:
            vectors = await self._inner.embed_batch(list(missing.values()))
            for key, vector in zip(missing, vectors, strict=True):
                self._remember(key, vector)
                found[key] = vector
        logger.debug("Embedded %d texts, %d cache misses", len(texts), len(missing))
        return [list(found[k]) for k in keys]

    @property
    def dimensions(self) -> int:
        return self._inner.dimensions

    @property
    def wrapped(self) -> Embedder:
        return self._inner

    @property
    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries), max_size=self._max)

    def clear(self) -> None:
        """Drop cached vectors; counters are kept."""
        self._entries.clear()
