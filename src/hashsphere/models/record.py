"""MemoryRecord - the atomic unit of memory."""

from __future__ import annotations

import math
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from hashsphere.geometry.spherical import cartesian_to_spherical
from hashsphere.geometry.resonance import sigmoid

from .base import Point3, TenantScope


class MemoryRecord(BaseModel):
    """A stored text fragment with its hashes, embedding and geometry.

    Records are frozen. Drift, tombstoning and cluster labelling each
    produce a new record that replaces the old one in the store, so
    concurrent readers always hold a consistent object.

    Only Cartesian coordinates and the raw resonance score are stored. The
    hyperspherical coordinates and the normalized resonance are computed
    from them on access and can never go stale.

    Attributes:
        universe_id: 256-bit hex identifier derived from content, time and tenant.
        content: Opaque content handle. Never mutated after creation.
        embedding: Full-length embedding vector, write-once.
        x, y, z: Position in the projected space.
        resonance_score: Raw resonance at the current position.
        anchor_energy: Energy toward the nearest anchor at last evaluation.
        created_at_ns: Creation time in nanoseconds since the epoch.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    universe_id: str = Field(min_length=64, max_length=64, description="256-bit hex identifier")

    # Ownership and content
    user_id: str = Field(description="User who owns this memory")
    org_id: str | None = Field(default=None, description="Organization (optional)")
    content: str = Field(description="Opaque content handle")
    source: str = Field(default="chat", description="Free-form origin tag, e.g. chat or code")

    # Hashes
    meaning_hash: str = Field(min_length=20, max_length=20)
    energy_hash: str = Field(min_length=8, max_length=8)
    spin_hash: str = Field(min_length=8, max_length=8)

    embedding: tuple[float, ...] = Field(repr=False, description="Write-once embedding vector")

    # Geometry (Cartesian is authoritative)
    x: float
    y: float
    z: float

    # Resonance
    resonance_score: float = Field(description="Raw resonance, unbounded")
    anchor_energy: float = Field(gt=0.0, le=1.0, description="Energy toward nearest anchor")
    nearest_anchor_id: str | None = Field(default=None, description="Anchor that won at last evaluation")

    # Spin and semantic scores
    spin_x: float = Field(ge=-1.0, le=1.0)
    spin_y: float = Field(ge=-1.0, le=1.0)
    spin_z: float = Field(ge=-1.0, le=1.0)
    meaning_score: float = Field(ge=0.0, le=1.0)
    intensity_score: float = Field(ge=0.0, le=1.0)
    sentiment_score: float = Field(ge=0.0, le=1.0, description="0.5 is neutral")

    cluster_name: str | None = Field(default=None, description="Label from offline clustering")

    # Temporal
    created_at_ns: int = Field(ge=0, description="Creation time, ns since epoch")
    drifted_at_ns: int | None = Field(default=None, description="Last drift application")
    deleted_at_ns: int | None = Field(default=None, description="Tombstone time")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def r(self) -> float:
        return cartesian_to_spherical(self.x, self.y, self.z)[0]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def phi(self) -> float:
        return cartesian_to_spherical(self.x, self.y, self.z)[1]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def theta(self) -> float:
        return cartesian_to_spherical(self.x, self.y, self.z)[2]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def normalized_resonance(self) -> float:
        return sigmoid(self.resonance_score)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def spin_magnitude(self) -> float:
        return math.sqrt(self.spin_x**2 + self.spin_y**2 + self.spin_z**2)

    @property
    def position(self) -> Point3:
        return (self.x, self.y, self.z)

    @property
    def tenant(self) -> TenantScope:
        return TenantScope(user_id=self.user_id, org_id=self.org_id)

    @property
    def created_at(self) -> datetime:
        """Creation time as an aware UTC datetime (microsecond precision)."""
        return datetime.fromtimestamp(self.created_at_ns / 1e9, tz=UTC)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at_ns is not None

    def drifted_to(
        self,
        position: Point3,
        resonance_score: float,
        anchor_energy: float,
        nearest_anchor_id: str | None,
        at_ns: int,
    ) -> MemoryRecord:
        """Return a copy moved to a new position with its resonance fields recomputed."""
        x, y, z = position
        return self.model_copy(
            update={
                "x": x,
                "y": y,
                "z": z,
                "resonance_score": resonance_score,
                "anchor_energy": anchor_energy,
                "nearest_anchor_id": nearest_anchor_id,
                "drifted_at_ns": at_ns,
            }
        )

    def tombstoned(self, at_ns: int) -> MemoryRecord:
        """Return a soft-deleted copy."""
        return self.model_copy(update={"deleted_at_ns": at_ns})

    def labelled(self, cluster_name: str | None) -> MemoryRecord:
        """Return a copy carrying a cluster label."""
        return self.model_copy(update={"cluster_name": cluster_name})

    def __str__(self) -> str:
        preview = self.content[:40] + "..." if len(self.content) > 40 else self.content
        return f"MemoryRecord({self.universe_id[:12]}: {preview!r})"
