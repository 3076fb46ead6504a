"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from hashsphere.config import Settings
from hashsphere.embeddings import HashingEmbedder
from hashsphere.geometry import CoordinateProjector, ProjectionMatrix, ResonanceScorer
from hashsphere.ingest import RecordBuilder
from hashsphere.models import Anchor, MemoryRecord, TenantScope
from hashsphere.service import HashSphereService
from hashsphere.storage import MemoryStore

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from helpers import TEST_DIM, FakeClock, vec  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from .env with a small embedding dimension."""
    return Settings(
        _env_file=None,
        embedding_dim=TEST_DIM,
        embedding_provider="hashing",
        embedding_cache_size=0,
        log_format="text",
    )


@pytest.fixture
def tenant() -> TenantScope:
    return TenantScope(user_id="user_1", org_id="org_1")


@pytest.fixture
def other_tenant() -> TenantScope:
    return TenantScope(user_id="user_2", org_id="org_1")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def projector() -> CoordinateProjector:
    return CoordinateProjector(ProjectionMatrix.random(TEST_DIM, seed=7))


@pytest.fixture
def scorer() -> ResonanceScorer:
    return ResonanceScorer()


@pytest.fixture
def store() -> MemoryStore:
    s = MemoryStore(embedding_dim=TEST_DIM)
    yield s
    s.close()


@pytest.fixture
def builder(projector: CoordinateProjector, scorer: ResonanceScorer, store: MemoryStore, clock: FakeClock) -> RecordBuilder:
    return RecordBuilder(projector, scorer, store.anchors, clock=clock)


@pytest.fixture
def make_record(builder: RecordBuilder, tenant: TenantScope):
    """Factory building a record with sensible defaults."""

    def _make(
        content: str = "hello world",
        seed: int = 0,
        scope: TenantScope | None = None,
        created_at_ns: int | None = None,
        position: tuple[float, float, float] | None = None,
    ) -> MemoryRecord:
        return builder.build(
            content,
            vec(seed),
            scope or tenant,
            created_at_ns=created_at_ns,
            position=position,
        )

    return _make


@pytest.fixture
def origin_anchor() -> Anchor:
    return Anchor.at("origin", (0.0, 0.0, 0.0), label="center")


@pytest.fixture
def service(settings: Settings, clock: FakeClock) -> HashSphereService:
    store = MemoryStore.from_settings(settings)
    svc = HashSphereService(
        settings=settings,
        store=store,
        embedder=HashingEmbedder(dimensions=TEST_DIM),
        projector=CoordinateProjector.from_settings(settings),
        scorer=ResonanceScorer.from_settings(settings),
        clock=clock,
    )
    yield svc
    svc.drift.stop()
    store.close()
