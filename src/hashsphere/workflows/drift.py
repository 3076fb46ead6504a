"""Drift workflow: move records toward their nearest anchor.

Each pass:
1. Takes the current anchor snapshot, which stays fixed for the whole pass
2. Scans live records in batches of ``batch_size``
3. Moves each record s toward its nearest anchor a by s' = (1 - gamma) s + gamma a
4. Recomputes resonance and anchor energy at the new position
5. Applies the batch to the store under one short write lock

Failures on one record are logged and counted; they never abort the pass.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from hashsphere.models import AnchorSnapshot, MemoryRecord, Point3, now_ns

if TYPE_CHECKING:
    from hashsphere.config import Settings
    from hashsphere.geometry import ResonanceScorer
    from hashsphere.storage import MemoryStore

logger = logging.getLogger(__name__)


class DriftState(str, Enum):
    """State of the drift scheduler."""

    IDLE = "idle"
    SCANNING = "scanning"
    APPLYING = "applying"


class DriftReport(BaseModel):
    """Result of a drift pass.

    Attributes:
        scanned: Live records examined.
        drifted: Records moved and written back.
        skipped: Records left in place (no anchors, already at the anchor,
            or replaced or deleted before the batch was applied).
        failed: Records whose drift raised an error.
        batches: Write-locked batches applied.
        anchor_version: Version of the anchor snapshot used.
    """

    model_config = ConfigDict(extra="forbid")

    scanned: int = Field(default=0, ge=0)
    drifted: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    batches: int = Field(default=0, ge=0)
    anchor_version: int = Field(default=0, ge=0)
    started_at_ns: int = Field(default=0, ge=0)
    completed_at_ns: int = Field(default=0, ge=0)


def drift_position(position: Point3, anchor: Point3, gamma: float) -> Point3:
    """Linear interpolation from position toward anchor.

    Written as (1 - gamma) * s + gamma * a rather than s + gamma * (a - s)
    so that gamma = 1 lands exactly on the anchor.
    """
    keep = 1.0 - gamma
    return (
        keep * position[0] + gamma * anchor[0],
        keep * position[1] + gamma * anchor[1],
        keep * position[2] + gamma * anchor[2],
    )


class DriftScheduler:
    """Runs drift passes on demand or on a background timer.

    Args:
        store: Store whose records drift.
        scorer: Recomputes resonance and anchor energy after each move.
        gamma: Fraction of the distance to the anchor covered per pass, in [0, 1].
        batch_size: Records per write-locked batch.
        clock: Nanosecond clock used for drifted_at_ns.

    Example:
        ```python
        scheduler = DriftScheduler(store, scorer, gamma=0.05)
        report = scheduler.run_once()

        scheduler.start(interval_seconds=3600)
        ...
        scheduler.stop()
        ```
    """

    def __init__(
        self,
        store: MemoryStore,
        scorer: ResonanceScorer,
        gamma: float = 0.05,
        batch_size: int = 256,
        clock: Callable[[], int] = now_ns,
    ) -> None:
        if not 0.0 <= gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {gamma}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.store = store
        self.scorer = scorer
        self.gamma = gamma
        self.batch_size = batch_size
        self.clock = clock
        self._state = DriftState.IDLE
        self._run_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_report: DriftReport | None = None

    @classmethod
    def from_settings(cls, store: MemoryStore, scorer: ResonanceScorer, settings: Settings) -> DriftScheduler:
        return cls(
            store,
            scorer,
            gamma=settings.drift_gamma,
            batch_size=settings.drift_batch_size,
        )

    @property
    def state(self) -> DriftState:
        return self._state

    @property
    def running(self) -> bool:
        """Whether the background timer thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> DriftReport:
        """Drift every live record once."""
        return self._run(self.store.live_ids())

    def drift_records(self, universe_ids: Iterable[str]) -> DriftReport:
        """Drift only the given records, e.g. the ones a query just returned."""
        return self._run(list(universe_ids))

    def _run(self, ids: Sequence[str]) -> DriftReport:
        with self._run_lock:
            snapshot = self.store.anchors.snapshot()
            report = DriftReport(anchor_version=snapshot.version, started_at_ns=self.clock())
            try:
                for start in range(0, len(ids), self.batch_size):
                    self._state = DriftState.SCANNING
                    batch = self.store.get_many(ids[start : start + self.batch_size])
                    report.scanned += len(batch)
                    updates: list[tuple[MemoryRecord, MemoryRecord]] = []
                    for record in batch:
                        try:
                            moved = self._drift_one(record, snapshot)
                        except Exception as e:
                            report.failed += 1
                            logger.warning(f"Failed to drift {record.universe_id[:12]}: {e}")
                            continue
                        if moved is None:
                            report.skipped += 1
                        else:
                            updates.append((record, moved))

                    if updates:
                        self._state = DriftState.APPLYING
                        applied = self.store.apply_updates(updates)
                        report.drifted += applied
                        report.skipped += len(updates) - applied
                        report.batches += 1
            finally:
                self._state = DriftState.IDLE
            report.completed_at_ns = self.clock()

        logger.info(
            f"Drift complete: {report.drifted} drifted, {report.skipped} skipped, "
            f"{report.failed} failed in {report.batches} batches"
        )
        self.last_report = report
        return report

    def _drift_one(self, record: MemoryRecord, snapshot: AnchorSnapshot) -> MemoryRecord | None:
        """Drifted copy of the record, or None when it has nowhere to go."""
        if not snapshot or self.gamma == 0.0:
            return None
        _, anchor_id = self.scorer.anchor_energy(record.position, snapshot)
        anchor = snapshot.get(anchor_id) if anchor_id is not None else None
        if anchor is None:
            raise LookupError(f"anchor {anchor_id!r} missing from snapshot v{snapshot.version}")

        target = drift_position(record.position, anchor.position, self.gamma)
        if target == record.position:
            return None
        energy, nearest_id = self.scorer.anchor_energy(target, snapshot)
        return record.drifted_to(
            position=target,
            resonance_score=self.scorer.score(*target),
            anchor_energy=energy,
            nearest_anchor_id=nearest_id,
            at_ns=self.clock(),
        )

    # ------------------------------------------------------------------
    # Background timer
    # ------------------------------------------------------------------

    def start(self, interval_seconds: float = 3600.0) -> None:
        """Run drift every ``interval_seconds`` on a daemon thread."""
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if self.running:
            logger.debug("Drift scheduler already running")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(interval_seconds,),
            name="hashsphere-drift",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Drift scheduler started (interval={interval_seconds}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Drift scheduler stopped")

    def _loop(self, interval_seconds: float) -> None:
        while not self._stop.wait(interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Drift pass failed")
