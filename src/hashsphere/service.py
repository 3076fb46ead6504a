"""Hash Sphere service layer.

Wires the engine together behind one facade: embed, build, store, retrieve,
aggregate and drift. The async methods embed text with the configured
provider; the synchronous ``ingest`` and ``search`` take a precomputed
embedding and run entirely on the calling thread.

Example:
    ```python
    from hashsphere import HashSphereService, TenantScope

    scope = TenantScope(user_id="user_123")
    async with HashSphereService.create() as sphere:
        uid = await sphere.insert("The deploy failed twice today", scope)
        results = await sphere.query("deploy problems", scope, top_k=5)
        evidence = sphere.aggregate(results)
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from hashsphere.config import Settings
from hashsphere.embeddings import Embedder, get_embedder
from hashsphere.exceptions import NotFoundError
from hashsphere.geometry import CoordinateProjector, ResonanceScorer
from hashsphere.ingest import RecordBuilder
from hashsphere.logging import bind_tenant, get_logger, unbind_context
from hashsphere.models import (
    Anchor,
    EvidenceVector,
    MemoryRecord,
    Point3,
    RetrievalMode,
    RetrievalQuery,
    RetrievalResponse,
    RetrievalResult,
    TenantScope,
    now_ns,
    require_tenant,
)
from hashsphere.retrieval import EvidenceAggregator, RetrievalEngine
from hashsphere.storage import MemoryStore, StoreStats
from hashsphere.workflows import DriftReport, DriftScheduler

logger = get_logger(__name__)


@dataclass
class HashSphereService:
    """High-level memory service.

    Uses dependency injection for the store, embedder, projector and
    scorer; the retrieval engine, record builder, evidence aggregator and
    drift scheduler are built from them.

    Attributes:
        settings: Configuration.
        store: Record store.
        embedder: Text embedding provider used by insert() and query().
        projector: Embedding to sphere projection.
        scorer: Resonance and anchor energy.
        clock: Nanosecond clock; injectable for deterministic tests.
        start_drift: Start the background drift timer in initialize().
    """

    settings: Settings
    store: MemoryStore
    embedder: Embedder
    projector: CoordinateProjector
    scorer: ResonanceScorer
    clock: Callable[[], int] = now_ns
    start_drift: bool = False

    builder: RecordBuilder = field(init=False, repr=False)
    engine: RetrievalEngine = field(init=False, repr=False)
    aggregator: EvidenceAggregator = field(init=False, repr=False)
    drift: DriftScheduler = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.builder = RecordBuilder(
            self.projector, self.scorer, self.store.anchors, clock=self.clock
        )
        self.engine = RetrievalEngine(self.store, self.projector, self.settings, clock=self.clock)
        self.aggregator = EvidenceAggregator(renormalize=self.settings.evidence_renormalize)
        self.drift = DriftScheduler(
            self.store,
            self.scorer,
            gamma=self.settings.drift_gamma,
            batch_size=self.settings.drift_batch_size,
            clock=self.clock,
        )

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        embedder: Embedder | None = None,
        anchors: Iterable[Anchor] = (),
    ) -> HashSphereService:
        """Create a service with default dependencies.

        Args:
            settings: Configuration; read from the environment when None.
            embedder: Embedding provider; built from settings when None.
            anchors: Initial anchor set.
        """
        if settings is None:
            settings = Settings()
        store = MemoryStore.from_settings(settings)
        initial = tuple(anchors)
        if initial:
            store.anchors.swap(initial)
        return cls(
            settings=settings,
            store=store,
            embedder=embedder or get_embedder(settings),
            projector=CoordinateProjector.from_settings(settings),
            scorer=ResonanceScorer.from_settings(settings),
        )

    async def initialize(self) -> None:
        if self.start_drift:
            self.drift.start(self.settings.drift_interval_seconds)

    async def close(self) -> None:
        self.drift.stop()
        self.store.close()

    async def __aenter__(self) -> HashSphereService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    async def insert(
        self,
        text: str,
        tenant_scope: TenantScope | None,
        source: str = "chat",
        created_at_ns: int | None = None,
    ) -> str:
        """Embed and store one text.

        Returns:
            The new record's universe_id.

        Raises:
            MissingTenantScopeError: If tenant_scope is missing.
            AlreadyExistsError: If the same content was stored for the same
                tenant at the same nanosecond.
            EmbeddingError: If the embedding provider fails.
        """
        require_tenant(tenant_scope, "insert")
        embedding = await self.embedder.embed(text)
        return self.ingest(text, embedding, tenant_scope, source=source, created_at_ns=created_at_ns)

    def ingest(
        self,
        text: str,
        embedding: Sequence[float],
        tenant_scope: TenantScope | None,
        source: str = "chat",
        created_at_ns: int | None = None,
        position: Point3 | None = None,
    ) -> str:
        """Store one text with a precomputed embedding.

        Raises:
            MissingTenantScopeError: If tenant_scope is missing.
            DimensionMismatchError: If the embedding length differs from D.
            AlreadyExistsError: If the record already exists.
        """
        record = self.builder.build(
            text,
            embedding,
            tenant_scope,
            source=source,
            created_at_ns=created_at_ns,
            position=position,
        )
        uid = self.store.insert(record)
        logger.info(
            "memory_inserted",
            universe_id=uid[:12],
            tenant=record.tenant.key,
            source=source,
        )
        return uid

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def query(
        self,
        text: str,
        tenant_scope: TenantScope | None,
        top_k: int | None = None,
        mode: RetrievalMode | str = RetrievalMode.HYBRID,
        resonance_threshold: float | None = None,
        radius: float | None = None,
        min_hash_similarity: float | None = None,
        budget_ms: float | None = None,
    ) -> list[RetrievalResult]:
        """Embed the query text and return ranked results."""
        require_tenant(tenant_scope, "query")
        embedding = await self.embedder.embed(text)
        response = self.search(
            text,
            embedding,
            tenant_scope,
            top_k=top_k,
            mode=mode,
            resonance_threshold=resonance_threshold,
            radius=radius,
            min_hash_similarity=min_hash_similarity,
            budget_ms=budget_ms,
        )
        return response.results

    def search(
        self,
        text: str,
        embedding: Sequence[float],
        tenant_scope: TenantScope | None,
        top_k: int | None = None,
        mode: RetrievalMode | str = RetrievalMode.HYBRID,
        resonance_threshold: float | None = None,
        radius: float | None = None,
        min_hash_similarity: float | None = None,
        budget_ms: float | None = None,
    ) -> RetrievalResponse:
        """Rank stored records against a precomputed query embedding.

        Drifts the returned records toward their anchors afterwards when
        ``drift_on_access`` is enabled.

        Raises:
            MissingTenantScopeError: If tenant_scope is missing.
            DimensionMismatchError: If the embedding length differs from D.
        """
        scope = require_tenant(tenant_scope, "query")
        query = RetrievalQuery(
            text=text,
            embedding=list(embedding),
            tenant=scope,
            top_k=top_k or self.settings.default_top_k,
            mode=RetrievalMode(mode),
            resonance_threshold=resonance_threshold,
            radius=radius,
            min_hash_similarity=min_hash_similarity,
            budget_ms=budget_ms,
        )
        bind_tenant(scope)
        try:
            response = self.engine.retrieve(query)
            logger.debug(
                "query_completed",
                mode=query.mode.value,
                results=len(response),
                partial=response.partial,
            )
        finally:
            unbind_context("user_id", "org_id")

        if self.settings.drift_on_access and response.results:
            self.drift.drift_records(response.universe_ids)
        return response

    def aggregate(self, results: Sequence[RetrievalResult]) -> EvidenceVector:
        """Weighted direction of the results' positions on the unit sphere."""
        return self.aggregator.aggregate(results)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get(self, universe_id: str, tenant_scope: TenantScope | None) -> MemoryRecord | None:
        """Fetch a live record owned by the tenant, or None."""
        scope = require_tenant(tenant_scope, "get")
        return self.store.get(universe_id, tenant=scope)

    def delete(self, universe_id: str, tenant_scope: TenantScope | None) -> None:
        """Tombstone a record.

        Raises:
            MissingTenantScopeError: If tenant_scope is missing.
            NotFoundError: If the record is unknown, already deleted or owned
                by another tenant.
        """
        scope = require_tenant(tenant_scope, "delete")
        try:
            self.store.delete(universe_id, tenant=scope)
        except NotFoundError:
            logger.debug("delete_missed", universe_id=universe_id[:12], tenant=scope.key)
            raise
        logger.info("memory_deleted", universe_id=universe_id[:12], tenant=scope.key)

    def stats(self) -> StoreStats:
        return self.store.stats()

    # ------------------------------------------------------------------
    # Anchors and drift
    # ------------------------------------------------------------------

    def get_anchors(self, limit: int | None = None) -> list[Anchor]:
        """Anchors of the current snapshot, in snapshot order."""
        anchors = list(self.store.anchors.snapshot().anchors)
        return anchors if limit is None else anchors[: max(0, limit)]

    def set_anchors(self, anchors: Iterable[Anchor]) -> int:
        """Atomically replace the anchor set.

        Returns:
            The new snapshot version.
        """
        snapshot = self.store.anchors.swap(anchors)
        logger.info("anchors_replaced", version=snapshot.version, count=len(snapshot))
        return snapshot.version

    def run_drift(self) -> DriftReport:
        """Run one drift pass over every live record."""
        return self.drift.run_once()


__all__ = ["HashSphereService"]
