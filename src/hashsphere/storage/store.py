"""In-memory record store with spatial, vector, hash, time and tenant indexes.

All public methods are thread-safe. Reads run concurrently under the read
side of a ReadWriteLock; inserts, deletes and batched updates are
serialized under the write side. Records are frozen, so a reader that got a
record keeps a consistent object even while a writer replaces it.
"""

from __future__ import annotations

import bisect
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from hashsphere.exceptions import (
    AlreadyExistsError,
    DimensionMismatchError,
    HashCollisionError,
    NotFoundError,
    ValidationError,
)
from hashsphere.models import MemoryRecord, Point3, TenantScope, now_ns

from .anchors import AnchorRegistry
from .locks import ReadWriteLock
from .spatial import SpatialIndex
from .vector import VectorIndex

if TYPE_CHECKING:
    from hashsphere.config import Settings

logger = logging.getLogger(__name__)

HASH_FIELDS = ("meaning_hash", "energy_hash", "spin_hash")


@dataclass
class ScoredRecord:
    """A record with an index score.

    Attributes:
        record: The matched record.
        score: Cosine similarity for vector search, distance for spatial search.
    """

    record: MemoryRecord
    score: float


class StoreStats(BaseModel):
    """Point-in-time counts for introspection."""

    model_config = ConfigDict(extra="forbid")

    live: int = Field(ge=0)
    deleted: int = Field(ge=0)
    tenants: int = Field(ge=0)
    spatial_indexed: int = Field(ge=0)
    vector_indexed: int = Field(ge=0)
    anchors: int = Field(ge=0)
    anchor_version: int = Field(ge=0)


class MemoryStore:
    """Authoritative storage for MemoryRecords.

    Args:
        embedding_dim: Required embedding length D.
        anchors: Anchor registry; an empty one is created when omitted.
        vector_index: ANN index; an in-memory Qdrant index is created when omitted.

    Example:
        ```python
        store = MemoryStore(embedding_dim=1536)
        store.insert(record)
        nearby = store.spatial_range_query((0.0, 0.0, 1.0), radius=0.5, tenant=scope)
        ```
    """

    def __init__(
        self,
        embedding_dim: int,
        anchors: AnchorRegistry | None = None,
        vector_index: VectorIndex | None = None,
    ) -> None:
        if embedding_dim <= 0:
            raise ValueError(f"embedding_dim must be positive, got {embedding_dim}")
        self._dim = embedding_dim
        self.lock = ReadWriteLock()
        self.anchors = anchors or AnchorRegistry()
        self._spatial = SpatialIndex()
        self._vector = vector_index or VectorIndex(embedding_dim)
        if self._vector.dim != embedding_dim:
            raise DimensionMismatchError(embedding_dim, self._vector.dim)

        self._records: dict[str, MemoryRecord] = {}
        self._hash_index: dict[str, dict[str, set[str]]] = {f: defaultdict(set) for f in HASH_FIELDS}
        self._tenant_index: dict[str, set[str]] = defaultdict(set)
        # (created_at_ns, universe_id), kept sorted
        self._timeline: list[tuple[int, str]] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> MemoryStore:
        return cls(embedding_dim=settings.embedding_dim)

    @property
    def embedding_dim(self) -> int:
        return self._dim

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: MemoryRecord) -> str:
        """Insert a record into every index.

        All-or-nothing: on failure no index is left holding the record.

        Returns:
            The record's universe_id.

        Raises:
            DimensionMismatchError: If the embedding length differs from D.
            AlreadyExistsError: If the universe_id is already stored with the same content.
            HashCollisionError: If the universe_id is stored with different content.
        """
        if len(record.embedding) != self._dim:
            raise DimensionMismatchError(self._dim, len(record.embedding))

        uid = record.universe_id
        tenant_key = record.tenant.key
        with self.lock.write():
            existing = self._records.get(uid)
            if existing is not None:
                if existing.content == record.content and existing.tenant == record.tenant:
                    raise AlreadyExistsError(uid)
                logger.critical(
                    "universe_id collision between distinct contents: %s", uid
                )
                raise HashCollisionError(uid)

            if record.is_deleted:
                raise ValidationError("deleted_at_ns", "cannot insert a tombstoned record")

            self._vector.add(uid, record.embedding, tenant_key)
            try:
                self._spatial.add(uid, record.position)
            except Exception:
                self._vector.remove(uid)
                raise

            self._records[uid] = record
            for field in HASH_FIELDS:
                self._hash_index[field][getattr(record, field)].add(uid)
            self._tenant_index[tenant_key].add(uid)
            bisect.insort(self._timeline, (record.created_at_ns, uid))

        logger.debug("Inserted %s for tenant %s", uid[:12], tenant_key)
        return uid

    def delete(self, universe_id: str, tenant: TenantScope | None = None) -> MemoryRecord:
        """Tombstone a record and drop it from the spatial and vector indexes.

        Returns:
            The tombstoned record.

        Raises:
            NotFoundError: If the id is unknown, already deleted, or owned by
                another tenant. A repeated delete raises again and changes nothing.
        """
        with self.lock.write():
            record = self._records.get(universe_id)
            if record is None or record.is_deleted or not self._visible(record, tenant):
                raise NotFoundError("memory", universe_id)
            tombstone = record.tombstoned(now_ns())
            self._records[universe_id] = tombstone
            self._spatial.remove(universe_id)
            self._vector.remove(universe_id)
        logger.info("Deleted memory %s", universe_id[:12])
        return tombstone

    def apply_updates(self, updates: Iterable[tuple[MemoryRecord, MemoryRecord]]) -> int:
        """Compare-and-swap a batch of (base, updated) record pairs under one write lock.

        Each updated copy replaces the stored record only if the stored
        record is still ``base``, the exact object the copy was built from.
        Pairs whose base was replaced meanwhile (by another drift batch, a
        relabel or a delete) are skipped, never merged. Only position,
        resonance, anchor and label fields may differ from the base.

        Returns:
            Number of records replaced.
        """
        pairs = list(updates)
        if not pairs:
            return 0
        applied = 0
        moves: list[tuple[str, Point3]] = []
        with self.lock.write():
            for base, new in pairs:
                old = self._records.get(new.universe_id)
                if old is None or old.is_deleted:
                    logger.debug("Skipping update for missing or deleted %s", new.universe_id[:12])
                    continue
                if old is not base:
                    logger.debug("Skipping stale update for %s", new.universe_id[:12])
                    continue
                if not self._write_once_fields_match(old, new):
                    logger.warning("Rejected update that changes write-once fields of %s", new.universe_id[:12])
                    continue
                self._records[new.universe_id] = new
                if new.position != old.position:
                    moves.append((new.universe_id, new.position))
                applied += 1
            self._spatial.update_many(moves)
        return applied

    def label_records(self, labels: Mapping[str, str | None]) -> int:
        """Set cluster labels on the current version of each live record.

        Labels are applied to whatever record is stored when the write lock
        is taken, so concurrent drift results are kept.

        Returns:
            Number of records whose label changed.
        """
        changed = 0
        with self.lock.write():
            for uid, label in labels.items():
                current = self._records.get(uid)
                if current is None or current.is_deleted or current.cluster_name == label:
                    continue
                self._records[uid] = current.labelled(label)
                changed += 1
        return changed

    @staticmethod
    def _write_once_fields_match(old: MemoryRecord, new: MemoryRecord) -> bool:
        return (
            old.content == new.content
            and old.user_id == new.user_id
            and old.org_id == new.org_id
            and old.created_at_ns == new.created_at_ns
            and old.meaning_hash == new.meaning_hash
            and old.energy_hash == new.energy_hash
            and old.spin_hash == new.spin_hash
            and old.embedding == new.embedding
            and new.deleted_at_ns is None
        )

    def purge_deleted(self, older_than_ns: int | None = None) -> int:
        """Permanently remove tombstones, optionally only those deleted before a time.

        Returns:
            Number of records purged.
        """
        with self.lock.write():
            doomed = [
                r
                for r in self._records.values()
                if r.deleted_at_ns is not None
                and (older_than_ns is None or r.deleted_at_ns < older_than_ns)
            ]
            for record in doomed:
                uid = record.universe_id
                del self._records[uid]
                for field in HASH_FIELDS:
                    bucket = self._hash_index[field].get(getattr(record, field))
                    if bucket is not None:
                        bucket.discard(uid)
                        if not bucket:
                            del self._hash_index[field][getattr(record, field)]
                tenant_ids = self._tenant_index.get(record.tenant.key)
                if tenant_ids is not None:
                    tenant_ids.discard(uid)
                    if not tenant_ids:
                        del self._tenant_index[record.tenant.key]
                i = bisect.bisect_left(self._timeline, (record.created_at_ns, uid))
                if i < len(self._timeline) and self._timeline[i] == (record.created_at_ns, uid):
                    del self._timeline[i]
        if doomed:
            logger.info("Purged %d deleted memories", len(doomed))
        return len(doomed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _visible(record: MemoryRecord, tenant: TenantScope | None) -> bool:
        return tenant is None or tenant.owns(record.user_id, record.org_id)

    def get(
        self,
        universe_id: str,
        tenant: TenantScope | None = None,
        include_deleted: bool = False,
    ) -> MemoryRecord | None:
        """Fetch a record by id, or None if absent, deleted or owned by another tenant."""
        with self.lock.read():
            record = self._records.get(universe_id)
        if record is None or not self._visible(record, tenant):
            return None
        if record.is_deleted and not include_deleted:
            return None
        return record

    def get_many(self, universe_ids: Iterable[str], tenant: TenantScope | None = None) -> list[MemoryRecord]:
        """Live records for the given ids in input order; unknown ids are dropped."""
        with self.lock.read():
            found = [self._records.get(uid) for uid in universe_ids]
        return [r for r in found if r is not None and not r.is_deleted and self._visible(r, tenant)]

    def spatial_range_query(
        self,
        center: Point3,
        radius: float,
        tenant: TenantScope | None = None,
    ) -> list[ScoredRecord]:
        """Live records within ``radius`` of ``center``, nearest first (score = distance)."""
        with self.lock.read():
            hits = self._spatial.range(center, radius)
            return self._resolve(hits, tenant)

    def spatial_nearest(
        self,
        center: Point3,
        k: int,
        tenant: TenantScope | None = None,
    ) -> list[ScoredRecord]:
        """The ``k`` nearest live records to ``center`` (score = distance).

        With a tenant, the tree is queried with a growing k until enough of
        the tenant's records are found or the index is exhausted.
        """
        if k <= 0:
            return []
        with self.lock.read():
            fetch = k if tenant is None else k * 4
            while True:
                hits = self._spatial.nearest(center, fetch)
                resolved = self._resolve(hits, tenant)
                if len(resolved) >= k or fetch >= len(self._spatial):
                    return resolved[:k]
                fetch *= 4

    def vector_search(
        self,
        query: Sequence[float],
        tenant: TenantScope | None = None,
        limit: int = 10,
    ) -> list[ScoredRecord]:
        """ANN shortlist by cosine similarity, best first (score = ANN cosine).

        Raises:
            DimensionMismatchError: If the query length differs from D.
        """
        if len(query) != self._dim:
            raise DimensionMismatchError(self._dim, len(query))
        with self.lock.read():
            hits = self._vector.search(query, limit, tenant.key if tenant else None)
            return self._resolve(hits, tenant)

    def _resolve(self, hits: list[tuple[str, float]], tenant: TenantScope | None) -> list[ScoredRecord]:
        # Caller holds the read lock.
        out = []
        for uid, score in hits:
            record = self._records.get(uid)
            if record is None or record.is_deleted or not self._visible(record, tenant):
                continue
            out.append(ScoredRecord(record=record, score=score))
        return out

    def find_by_hash(
        self,
        field: str,
        value: str,
        tenant: TenantScope | None = None,
    ) -> list[MemoryRecord]:
        """Live records with an exact hash match.

        Args:
            field: "meaning", "energy" or "spin" (the "_hash" suffix is optional).
            value: Hex digest to match.

        Raises:
            ValidationError: If the field is not a hash field.
        """
        name = field if field.endswith("_hash") else f"{field}_hash"
        if name not in HASH_FIELDS:
            raise ValidationError("field", f"unknown hash field {field!r}")
        with self.lock.read():
            ids = sorted(self._hash_index[name].get(value, ()))
            records = [self._records[uid] for uid in ids]
        return [r for r in records if not r.is_deleted and self._visible(r, tenant)]

    def range_by_time(
        self,
        start_ns: int | None = None,
        end_ns: int | None = None,
        tenant: TenantScope | None = None,
    ) -> list[MemoryRecord]:
        """Live records with start_ns <= created_at_ns < end_ns, oldest first."""
        with self.lock.read():
            lo = 0 if start_ns is None else bisect.bisect_left(self._timeline, (start_ns, ""))
            hi = len(self._timeline) if end_ns is None else bisect.bisect_left(self._timeline, (end_ns, ""))
            records = [self._records[uid] for _, uid in self._timeline[lo:hi]]
        return [r for r in records if not r.is_deleted and self._visible(r, tenant)]

    def list_records(
        self,
        tenant: TenantScope | None = None,
        include_deleted: bool = False,
    ) -> list[MemoryRecord]:
        """Records in creation order."""
        with self.lock.read():
            if tenant is not None:
                ids = self._tenant_index.get(tenant.key, set())
                records = [self._records[uid] for uid in ids]
                records.sort(key=lambda r: (r.created_at_ns, r.universe_id))
            else:
                records = [self._records[uid] for _, uid in self._timeline]
        return [
            r
            for r in records
            if (include_deleted or not r.is_deleted) and self._visible(r, tenant)
        ]

    def live_ids(self) -> list[str]:
        """Ids of all live records in creation order."""
        with self.lock.read():
            return [uid for _, uid in self._timeline if not self._records[uid].is_deleted]

    def count(self, tenant: TenantScope | None = None, include_deleted: bool = False) -> int:
        return len(self.list_records(tenant=tenant, include_deleted=include_deleted))

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, universe_id: object) -> bool:
        with self.lock.read():
            record = self._records.get(universe_id)  # type: ignore[arg-type]
        return record is not None and not record.is_deleted

    def stats(self) -> StoreStats:
        with self.lock.read():
            deleted = sum(1 for r in self._records.values() if r.is_deleted)
            snapshot = self.anchors.snapshot()
            return StoreStats(
                live=len(self._records) - deleted,
                deleted=deleted,
                tenants=len(self._tenant_index),
                spatial_indexed=len(self._spatial),
                vector_indexed=len(self._vector),
                anchors=len(snapshot),
                anchor_version=snapshot.version,
            )

    def close(self) -> None:
        self._vector.close()
