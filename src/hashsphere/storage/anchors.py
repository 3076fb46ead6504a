"""Anchor registry with atomic snapshot swap."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from hashsphere.exceptions import ValidationError
from hashsphere.models import Anchor, AnchorSnapshot

logger = logging.getLogger(__name__)


class AnchorRegistry:
    """Holds the current AnchorSnapshot.

    Readers take a snapshot reference and use it for the whole operation;
    ``swap`` replaces the reference in one assignment, so no reader ever
    sees a half-updated anchor set.
    """

    def __init__(self, anchors: Iterable[Anchor] = ()) -> None:
        self._swap_lock = threading.Lock()
        self._snapshot = self._build(anchors, version=0)

    @staticmethod
    def _build(anchors: Iterable[Anchor], version: int) -> AnchorSnapshot:
        items = tuple(anchors)
        seen: set[str] = set()
        for anchor in items:
            if anchor.anchor_id in seen:
                raise ValidationError("anchors", f"duplicate anchor_id {anchor.anchor_id!r}")
            seen.add(anchor.anchor_id)
        return AnchorSnapshot.of(items, version=version)

    def snapshot(self) -> AnchorSnapshot:
        return self._snapshot

    def swap(self, anchors: Iterable[Anchor]) -> AnchorSnapshot:
        """Install a new anchor set and return its snapshot (version + 1)."""
        with self._swap_lock:
            new = self._build(anchors, version=self._snapshot.version + 1)
            self._snapshot = new
        logger.info("Installed anchor snapshot v%d with %d anchors", new.version, len(new))
        return new

    def __len__(self) -> int:
        return len(self._snapshot)
