"""Deterministic feature-hashing embedder.

Needs no model and no network, so it backs tests, demos and offline runs.
Tokens and character trigrams are hashed with SHA-256 (stable across
processes, unlike ``hash()``) into a signed dense vector, then
L2-normalized. Texts that share words land close together; semantics
beyond shared surface forms are not captured.
"""

from __future__ import annotations

import hashlib
import re

import numpy as np

from .base import Embedder

_WORD_RE = re.compile(r"[a-z0-9_']+")


class HashingEmbedder(Embedder):
    """Signed feature hashing into ``dimensions`` buckets.

    Args:
        dimensions: Output size.
        char_ngrams: Also hash character trigrams of each token, which makes
            near-spellings similar.
    """

    def __init__(self, dimensions: int = 256, char_ngrams: bool = True) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be positive, got {dimensions}")
        self._dimensions = dimensions
        self.char_ngrams = char_ngrams

    def _features(self, text: str) -> list[str]:
        words = _WORD_RE.findall(text.lower())
        feats = [f"w:{w}" for w in words]
        if self.char_ngrams:
            for w in words:
                padded = f"^{w}$"
                feats.extend(f"c:{padded[i:i + 3]}" for i in range(len(padded) - 2))
        return feats

    def _bucket(self, feature: str) -> tuple[int, float]:
        digest = hashlib.sha256(feature.encode("utf-8")).digest()
        index = int.from_bytes(digest[:8], "big") % self._dimensions
        sign = 1.0 if digest[8] & 1 else -1.0
        return index, sign

    def embed_sync(self, text: str) -> list[float]:
        """Synchronous embedding; the all-zero vector for text with no tokens."""
        vec = np.zeros(self._dimensions, dtype=np.float64)
        for feature in self._features(text):
            index, sign = self._bucket(feature)
            vec[index] += sign
        norm = float(np.linalg.norm(vec))
        if norm > 0.0:
            vec /= norm
        return vec.tolist()

    async def embed(self, text: str) -> list[float]:
        return self.embed_sync(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_sync(t) for t in texts]

    @property
    def dimensions(self) -> int:
        return self._dimensions
