"""Anchor models - reference points for energy and drift."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .base import Point3


class Anchor(BaseModel):
    """A fixed or slowly-moving reference point in the projected space.

    Anchors are derived data (typically cluster centroids computed offline),
    never created per query.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    anchor_id: str = Field(min_length=1, description="Stable anchor identity")
    x: float
    y: float
    z: float
    label: str | None = Field(default=None, description="Cluster or concept name")

    @property
    def position(self) -> Point3:
        return (self.x, self.y, self.z)

    @classmethod
    def at(cls, anchor_id: str, position: Point3, label: str | None = None) -> Anchor:
        x, y, z = position
        return cls(anchor_id=anchor_id, x=float(x), y=float(y), z=float(z), label=label)


class AnchorSnapshot(BaseModel):
    """An immutable, versioned set of anchors.

    Snapshots are replaced wholesale, never edited, so an operation that
    captured one keeps a consistent anchor set for its whole duration.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: int = Field(default=0, ge=0)
    anchors: tuple[Anchor, ...] = Field(default=())

    _positions: np.ndarray = PrivateAttr()
    _by_id: dict[str, Anchor] = PrivateAttr()

    def model_post_init(self, __context: object) -> None:
        self._positions = np.array(
            [a.position for a in self.anchors], dtype=np.float64
        ).reshape(-1, 3)
        self._by_id = {a.anchor_id: a for a in self.anchors}

    @classmethod
    def of(cls, anchors: Iterable[Anchor], version: int = 0) -> AnchorSnapshot:
        return cls(version=version, anchors=tuple(anchors))

    @property
    def positions(self) -> np.ndarray:
        """(n, 3) array of anchor positions in snapshot order."""
        return self._positions

    def get(self, anchor_id: str) -> Anchor | None:
        return self._by_id.get(anchor_id)

    def __len__(self) -> int:
        return len(self.anchors)

    def __bool__(self) -> bool:
        return bool(self.anchors)
