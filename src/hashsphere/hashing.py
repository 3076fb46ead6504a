"""Deterministic content hashing.

Derives the four hashes every record carries:

- meaning_hash (20 hex chars): SHA-256 of the normalized content.
- energy_hash (8 hex chars): SHA-256 of the quantized intensity features.
- spin_hash (8 hex chars): SHA-256 of the quantized sentiment/direction features.
- universe_id (64 hex chars): SHA-256 of content, creation time in
  nanoseconds, and tenant scope.

The three content hashes support a coarse Hamming-style comparison that is
much cheaper than vector similarity.
"""

from __future__ import annotations

import hashlib
import re
import unicodedata

from pydantic import BaseModel, ConfigDict, Field

from .features import LexicalFeatures, extract_features

MEANING_HASH_LENGTH = 20
ENERGY_HASH_LENGTH = 8
SPIN_HASH_LENGTH = 8

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_content(content: str) -> str:
    """NFKC-normalize, casefold and collapse whitespace."""
    text = unicodedata.normalize("NFKC", content).casefold()
    return _WHITESPACE_RE.sub(" ", text).strip()


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hash_similarity(a: str, b: str) -> float:
    """Bit-level Hamming similarity of two equal-length hex digests.

    Returns 1.0 for identical digests and about 0.5 for unrelated ones.
    Digests of different lengths, or non-hex input, score 0.0.
    """
    if not a or len(a) != len(b):
        return 0.0
    try:
        diff = int(a, 16) ^ int(b, 16)
    except ValueError:
        return 0.0
    bits = 4 * len(a)
    return 1.0 - bin(diff).count("1") / bits


class HashSet(BaseModel):
    """The hashes derived for one piece of content."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    meaning_hash: str = Field(min_length=MEANING_HASH_LENGTH, max_length=MEANING_HASH_LENGTH)
    energy_hash: str = Field(min_length=ENERGY_HASH_LENGTH, max_length=ENERGY_HASH_LENGTH)
    spin_hash: str = Field(min_length=SPIN_HASH_LENGTH, max_length=SPIN_HASH_LENGTH)
    universe_id: str = Field(min_length=64, max_length=64)

    def similarity(self, meaning_hash: str, energy_hash: str, spin_hash: str) -> float:
        """Mean Hamming similarity over the three content hashes."""
        return (
            hash_similarity(self.meaning_hash, meaning_hash)
            + hash_similarity(self.energy_hash, energy_hash)
            + hash_similarity(self.spin_hash, spin_hash)
        ) / 3.0


class HashDeriver:
    """Computes content hashes and the universe_id.

    Stateless and safe to share between threads.
    """

    def meaning_hash(self, content: str) -> str:
        return _sha256_hex(normalize_content(content).encode("utf-8"))[:MEANING_HASH_LENGTH]

    def energy_hash(self, features: LexicalFeatures) -> str:
        summary = "energy|" + features.energy_summary()
        return _sha256_hex(summary.encode("utf-8"))[:ENERGY_HASH_LENGTH]

    def spin_hash(self, features: LexicalFeatures) -> str:
        summary = "spin|" + features.spin_summary()
        return _sha256_hex(summary.encode("utf-8"))[:SPIN_HASH_LENGTH]

    def universe_id(self, content: str, created_at_ns: int, tenant_scope: bytes) -> str:
        """256-bit id over (content, created_at_ns, tenant_scope).

        The fields are joined with NUL separators so that no two distinct
        triples share a preimage.
        """
        h = hashlib.sha256()
        h.update(content.encode("utf-8"))
        h.update(b"\x00")
        h.update(str(int(created_at_ns)).encode("ascii"))
        h.update(b"\x00")
        h.update(tenant_scope)
        return h.hexdigest()

    def derive(
        self,
        content: str,
        created_at_ns: int,
        tenant_scope: bytes,
        features: LexicalFeatures | None = None,
    ) -> HashSet:
        """Derive all four hashes.

        Args:
            content: Raw text.
            created_at_ns: Creation time in nanoseconds since the epoch.
            tenant_scope: Tenant isolation key as bytes.
            features: Pre-extracted lexical features; extracted here when omitted.
        """
        if features is None:
            features = extract_features(content)
        return HashSet(
            meaning_hash=self.meaning_hash(content),
            energy_hash=self.energy_hash(features),
            spin_hash=self.spin_hash(features),
            universe_id=self.universe_id(content, created_at_ns, tenant_scope),
        )

    def content_hashes(self, content: str, features: LexicalFeatures | None = None) -> tuple[str, str, str]:
        """(meaning, energy, spin) hashes for a query, which has no universe_id."""
        if features is None:
            features = extract_features(content)
        return self.meaning_hash(content), self.energy_hash(features), self.spin_hash(features)
