"""Storage layer for Hash Sphere.

Holds records in memory behind a readers-writer lock, with a scipy cKDTree
spatial index, an in-process Qdrant vector index, hash and time indexes,
and an atomically swapped anchor set.

Example:
    ```python
    from hashsphere.storage import MemoryStore

    store = MemoryStore(embedding_dim=1536)
    store.insert(record)
    hits = store.vector_search(query_embedding, tenant=scope, limit=20)
    ```
"""

from .anchors import AnchorRegistry
from .locks import ReadWriteLock
from .spatial import SpatialIndex
from .store import HASH_FIELDS, MemoryStore, ScoredRecord, StoreStats
from .vector import VectorIndex

__all__ = [
    "AnchorRegistry",
    "HASH_FIELDS",
    "MemoryStore",
    "ReadWriteLock",
    "ScoredRecord",
    "SpatialIndex",
    "StoreStats",
    "VectorIndex",
]
