"""Spatial index over projected (x, y, z) positions.

Wraps a scipy cKDTree. The tree is immutable, so writes only mark the index
dirty and the tree is rebuilt lazily on the next query. Rebuilding is
O(n log n); with writes arriving in drift batches this keeps the cost per
batch rather than per record.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

import numpy as np
from scipy.spatial import cKDTree

from hashsphere.models import Point3

logger = logging.getLogger(__name__)


class SpatialIndex:
    """Point index keyed by universe_id.

    Thread-safe: an internal lock guards both the point table and the
    lazily rebuilt tree.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._points: dict[str, Point3] = {}
        self._ids: list[str] = []
        self._tree: cKDTree | None = None
        self._dirty = False

    def __len__(self) -> int:
        return len(self._points)

    def __contains__(self, universe_id: object) -> bool:
        return universe_id in self._points

    def add(self, universe_id: str, position: Point3) -> None:
        with self._lock:
            self._points[universe_id] = (float(position[0]), float(position[1]), float(position[2]))
            self._dirty = True

    def update_many(self, moves: Iterable[tuple[str, Point3]]) -> None:
        """Move existing points; unknown ids are ignored."""
        with self._lock:
            for universe_id, position in moves:
                if universe_id in self._points:
                    self._points[universe_id] = (
                        float(position[0]),
                        float(position[1]),
                        float(position[2]),
                    )
                    self._dirty = True

    def remove(self, universe_id: str) -> bool:
        with self._lock:
            if self._points.pop(universe_id, None) is None:
                return False
            self._dirty = True
            return True

    def _ensure_tree(self) -> cKDTree | None:
        # Caller holds self._lock.
        if self._dirty or (self._tree is None and self._points):
            self._ids = list(self._points)
            if self._ids:
                data = np.array([self._points[i] for i in self._ids], dtype=np.float64)
                self._tree = cKDTree(data)
            else:
                self._tree = None
            self._dirty = False
            logger.debug("Rebuilt spatial index over %d points", len(self._ids))
        return self._tree

    def range(self, center: Point3, radius: float) -> list[tuple[str, float]]:
        """All points within ``radius`` of ``center`` as (id, distance), nearest first."""
        if radius < 0:
            raise ValueError(f"radius must be non-negative, got {radius}")
        with self._lock:
            tree = self._ensure_tree()
            if tree is None:
                return []
            c = np.asarray(center, dtype=np.float64)
            idxs = tree.query_ball_point(c, r=radius)
            hits = [
                (self._ids[i], float(np.linalg.norm(tree.data[i] - c)))
                for i in idxs
            ]
        hits.sort(key=lambda h: (h[1], h[0]))
        return hits

    def nearest(self, center: Point3, k: int) -> list[tuple[str, float]]:
        """The ``k`` nearest points as (id, distance), nearest first."""
        if k <= 0:
            return []
        with self._lock:
            tree = self._ensure_tree()
            if tree is None:
                return []
            k = min(k, tree.n)
            dists, idxs = tree.query(np.asarray(center, dtype=np.float64), k=k)
            dists = np.atleast_1d(dists)
            idxs = np.atleast_1d(idxs)
            hits = [(self._ids[int(i)], float(d)) for d, i in zip(dists, idxs, strict=True)]
        hits.sort(key=lambda h: (h[1], h[0]))
        return hits

    def clear(self) -> None:
        with self._lock:
            self._points.clear()
            self._ids = []
            self._tree = None
            self._dirty = False
