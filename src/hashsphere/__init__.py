"""Hash Sphere: geometric, content-addressed semantic memory.

Stores text fragments with deterministic hashes, full embeddings and a
position on a 3D sphere, scores each position with a resonance function,
and serves hybrid nearest-neighbour plus resonance retrieval.

Quick Start:
    from hashsphere import HashSphereService, TenantScope

    scope = TenantScope(user_id="user_123")
    async with HashSphereService.create() as sphere:
        uid = await sphere.insert("Shipped the new index today!", scope)
        results = await sphere.query("index release", scope, top_k=5)
        direction = sphere.aggregate(results)

Components:
    - HashDeriver: meaning, energy and spin hashes plus the universe_id
    - CoordinateProjector: embedding to sphere position via a fixed projection
    - ResonanceScorer: R = sin(ax) + cos(by) + tan(cz) and anchor energy
    - SpinSemanticAnalyzer: spin axes and semantic scores
    - MemoryStore: spatial, vector, hash, time and tenant indexes
    - RetrievalEngine: rag, vector, spatial, resonance and hybrid ranking
    - EvidenceAggregator: weighted direction of a result set
    - DriftScheduler: batched movement of records toward their anchors
"""

__version__ = "0.1.0"

# Configuration
from .config import HybridWeights, ResonanceCoefficients, Settings, settings

# Exceptions
from .exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    HashCollisionError,
    HashSphereError,
    MissingTenantScopeError,
    NotFoundError,
    ValidationError,
)

# Components
from .geometry import CoordinateProjector, ProjectionMatrix, ResonanceScorer
from .hashing import HashDeriver, HashSet
from .ingest import RecordBuilder

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    logger,
    unbind_context,
)

# Models
from .models import (
    Anchor,
    AnchorSnapshot,
    EvidenceVector,
    MemoryRecord,
    MethodScores,
    RetrievalMode,
    RetrievalQuery,
    RetrievalResponse,
    RetrievalResult,
    TenantScope,
)
from .retrieval import EvidenceAggregator, RetrievalEngine
from .service import HashSphereService
from .spin import SpinProfile, SpinSemanticAnalyzer
from .storage import MemoryStore
from .workflows import DriftReport, DriftScheduler, DriftState

__all__ = [
    # Version
    "__version__",
    # Configuration
    "HybridWeights",
    "ResonanceCoefficients",
    "Settings",
    "settings",
    # Exceptions
    "HashSphereError",
    "ValidationError",
    "AlreadyExistsError",
    "NotFoundError",
    "DimensionMismatchError",
    "MissingTenantScopeError",
    "HashCollisionError",
    "ConfigurationError",
    "EmbeddingError",
    # Logging
    "configure_logging",
    "get_logger",
    "logger",
    "bind_context",
    "clear_context",
    "unbind_context",
    # Models
    "Anchor",
    "AnchorSnapshot",
    "EvidenceVector",
    "MemoryRecord",
    "MethodScores",
    "RetrievalMode",
    "RetrievalQuery",
    "RetrievalResponse",
    "RetrievalResult",
    "TenantScope",
    # Components
    "CoordinateProjector",
    "DriftReport",
    "DriftScheduler",
    "DriftState",
    "EvidenceAggregator",
    "HashDeriver",
    "HashSet",
    "HashSphereService",
    "MemoryStore",
    "ProjectionMatrix",
    "RecordBuilder",
    "ResonanceScorer",
    "RetrievalEngine",
    "SpinProfile",
    "SpinSemanticAnalyzer",
]
