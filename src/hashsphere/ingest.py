"""Record construction: text + embedding -> MemoryRecord.

Runs the ingest pipeline in order: lexical features, hashes, spin and
semantic scores, projection into the sphere, resonance and anchor energy.
Everything is computed before the store is touched, so a failing input
never leaves partial state behind.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from hashsphere.exceptions import DimensionMismatchError, ValidationError
from hashsphere.features import extract_features
from hashsphere.hashing import HashDeriver
from hashsphere.models import MemoryRecord, Point3, TenantScope, now_ns, require_tenant
from hashsphere.spin import SpinSemanticAnalyzer

if TYPE_CHECKING:
    from hashsphere.geometry import CoordinateProjector, ResonanceScorer
    from hashsphere.storage import AnchorRegistry

logger = logging.getLogger(__name__)


class RecordBuilder:
    """Builds fully-derived MemoryRecords.

    Args:
        projector: Embedding to sphere projection.
        scorer: Resonance and anchor energy.
        anchors: Registry whose current snapshot scores new records.
        hasher: Hash derivation.
        analyzer: Spin and semantic scoring.
        clock: Nanosecond clock for created_at_ns when none is given.
    """

    def __init__(
        self,
        projector: CoordinateProjector,
        scorer: ResonanceScorer,
        anchors: AnchorRegistry,
        hasher: HashDeriver | None = None,
        analyzer: SpinSemanticAnalyzer | None = None,
        clock: Callable[[], int] = now_ns,
    ) -> None:
        self.projector = projector
        self.scorer = scorer
        self.anchors = anchors
        self.hasher = hasher or HashDeriver()
        self.analyzer = analyzer or SpinSemanticAnalyzer()
        self.clock = clock

    def build(
        self,
        content: str,
        embedding: Sequence[float],
        tenant: TenantScope | None,
        source: str = "chat",
        created_at_ns: int | None = None,
        position: Point3 | None = None,
    ) -> MemoryRecord:
        """Derive every field of a new record.

        Args:
            content: Raw text; stored as an opaque handle.
            embedding: Vector of length D.
            tenant: Owning tenant; mandatory.
            source: Free-form origin tag.
            created_at_ns: Creation time; the clock is used when None.
            position: Place the record here instead of projecting the
                embedding. Used by importers that already know positions.

        Raises:
            MissingTenantScopeError: If tenant is missing.
            DimensionMismatchError: If the embedding length differs from D.
            ValidationError: If the embedding or position has non-finite values.
        """
        scope = require_tenant(tenant, "insert")
        if len(embedding) != self.projector.dim:
            raise DimensionMismatchError(self.projector.dim, len(embedding))
        vector = tuple(float(v) for v in embedding)
        if not all(math.isfinite(v) for v in vector):
            raise ValidationError("embedding", "contains NaN or infinite values")

        if position is None:
            pos = self.projector.project(vector).cartesian
        else:
            pos = (float(position[0]), float(position[1]), float(position[2]))
            if not all(math.isfinite(c) for c in pos):
                raise ValidationError("position", "contains NaN or infinite values")

        created = self.clock() if created_at_ns is None else int(created_at_ns)
        if created < 0:
            raise ValidationError("created_at_ns", "must be non-negative")

        features = extract_features(content)
        hashes = self.hasher.derive(content, created, scope.as_bytes(), features)
        spin = self.analyzer.analyze(content, features)
        energy, anchor_id = self.scorer.anchor_energy(pos, self.anchors.snapshot())

        return MemoryRecord(
            universe_id=hashes.universe_id,
            user_id=scope.user_id,
            org_id=scope.org_id,
            content=content,
            source=source,
            meaning_hash=hashes.meaning_hash,
            energy_hash=hashes.energy_hash,
            spin_hash=hashes.spin_hash,
            embedding=vector,
            x=pos[0],
            y=pos[1],
            z=pos[2],
            resonance_score=self.scorer.score(*pos),
            anchor_energy=energy,
            nearest_anchor_id=anchor_id,
            spin_x=spin.spin_x,
            spin_y=spin.spin_y,
            spin_z=spin.spin_z,
            meaning_score=spin.meaning_score,
            intensity_score=spin.intensity_score,
            sentiment_score=spin.sentiment_score,
            created_at_ns=created,
        )
