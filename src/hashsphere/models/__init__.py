"""Data models for the Hash Sphere memory engine."""

from .anchor import Anchor, AnchorSnapshot
from .base import ORIGIN, Point3, TenantScope, now_ns, require_tenant
from .record import MemoryRecord
from .retrieval import (
    EvidenceVector,
    MethodScores,
    RetrievalMode,
    RetrievalQuery,
    RetrievalResponse,
    RetrievalResult,
)

__all__ = [
    "ORIGIN",
    "Anchor",
    "AnchorSnapshot",
    "EvidenceVector",
    "MemoryRecord",
    "MethodScores",
    "Point3",
    "RetrievalMode",
    "RetrievalQuery",
    "RetrievalResponse",
    "RetrievalResult",
    "TenantScope",
    "now_ns",
    "require_tenant",
]
