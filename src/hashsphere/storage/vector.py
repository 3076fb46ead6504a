"""Approximate nearest-neighbour index over full embeddings.

Backed by an in-process Qdrant collection (``QdrantClient(":memory:")``)
with cosine distance. Each point carries the record's universe_id and its
tenant key as payload so searches are tenant-filtered inside Qdrant.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Sequence

import numpy as np
from qdrant_client import QdrantClient, models

from hashsphere.exceptions import DimensionMismatchError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "hashsphere_records"


class VectorIndex:
    """Cosine ANN index keyed by universe_id.

    Args:
        dim: Embedding dimension D.
        collection_name: Qdrant collection to create.
        client: Existing client; a private in-memory one is created when omitted.
    """

    def __init__(
        self,
        dim: int,
        collection_name: str = DEFAULT_COLLECTION,
        client: QdrantClient | None = None,
    ) -> None:
        self._dim = dim
        self._collection = collection_name
        self._client = client or QdrantClient(location=":memory:")
        self._lock = threading.Lock()
        self._ids: set[str] = set()
        self._ensure_collection()

    @property
    def dim(self) -> int:
        return self._dim

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, universe_id: object) -> bool:
        return universe_id in self._ids

    @staticmethod
    def _point_id(universe_id: str) -> str:
        """Qdrant point ids must be UUIDs or unsigned ints; derive a UUID-format id."""
        h = hashlib.sha256(universe_id.encode()).hexdigest()[:32]
        return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"

    def _ensure_collection(self) -> None:
        existing = [c.name for c in self._client.get_collections().collections]
        if self._collection not in existing:
            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=models.VectorParams(
                    size=self._dim,
                    distance=models.Distance.COSINE,
                ),
            )

    def _check_dim(self, vector: Sequence[float]) -> None:
        if len(vector) != self._dim:
            raise DimensionMismatchError(self._dim, len(vector))

    def add(self, universe_id: str, vector: Sequence[float], tenant_key: str) -> bool:
        """Index a vector. Zero-norm vectors have no direction and are skipped.

        Returns:
            True if the vector was indexed.
        """
        self._check_dim(vector)
        if not np.any(np.asarray(vector, dtype=np.float64)):
            logger.debug("Skipping zero-norm embedding for %s", universe_id[:12])
            return False
        with self._lock:
            self._client.upsert(
                collection_name=self._collection,
                points=[
                    models.PointStruct(
                        id=self._point_id(universe_id),
                        vector=[float(v) for v in vector],
                        payload={"universe_id": universe_id, "tenant_key": tenant_key},
                    )
                ],
            )
            self._ids.add(universe_id)
        return True

    def remove(self, universe_id: str) -> bool:
        with self._lock:
            if universe_id not in self._ids:
                return False
            self._client.delete(
                collection_name=self._collection,
                points_selector=models.PointIdsList(points=[self._point_id(universe_id)]),
            )
            self._ids.discard(universe_id)
        return True

    def search(
        self,
        vector: Sequence[float],
        limit: int,
        tenant_key: str | None = None,
    ) -> list[tuple[str, float]]:
        """Top ``limit`` ids by cosine similarity as (id, score), best first.

        Args:
            vector: Query embedding.
            limit: Maximum hits.
            tenant_key: Restrict hits to one tenant.

        Raises:
            DimensionMismatchError: If the query length differs from D.
        """
        self._check_dim(vector)
        if limit <= 0 or not np.any(np.asarray(vector, dtype=np.float64)):
            return []
        query_filter = None
        if tenant_key is not None:
            query_filter = models.Filter(
                must=[
                    models.FieldCondition(
                        key="tenant_key",
                        match=models.MatchValue(value=tenant_key),
                    )
                ]
            )
        with self._lock:
            if not self._ids:
                return []
            response = self._client.query_points(
                collection_name=self._collection,
                query=[float(v) for v in vector],
                query_filter=query_filter,
                limit=limit,
                with_payload=True,
            )
        return [
            (str(point.payload["universe_id"]), float(point.score))
            for point in response.points
            if point.payload is not None
        ]

    def close(self) -> None:
        self._client.close()
