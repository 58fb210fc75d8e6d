"""Progress tracking for the reconciliation and mutation phases.

Each phase owns a PhaseTracker and advances it at batch boundaries. An
optional callback receives a PhaseProgress snapshot on every update, which
is how the CLI drives its progress bar.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from holdsweep.core.logging import get_logger
from holdsweep.utils.time import utc_now

_logger = get_logger("progress")


@dataclass
class PhaseProgress:
    """Snapshot of a phase's progress.

    Attributes:
        phase: Phase name ("reconciliation" or "mutation").
        processed: Items completed so far.
        total: Items the phase will handle.
        batch_num: Last completed batch number.
        started_at: When the phase started.
    """

    phase: str
    processed: int
    total: int
    batch_num: int = 0
    started_at: datetime = field(default_factory=utc_now)

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return round(self.processed / self.total * 100, 1)

    @property
    def elapsed_seconds(self) -> float:
        return (utc_now() - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "processed": self.processed,
            "total": self.total,
            "percent": self.percent,
            "batch_num": self.batch_num,
            "started_at": self.started_at.isoformat(),
        }


ProgressCallback = Callable[[PhaseProgress], None]


class PhaseTracker:
    """Tracks completed items for one phase and notifies a callback."""

    def __init__(
        self,
        phase: str,
        total: int,
        callback: ProgressCallback | None = None,
    ) -> None:
        self._progress = PhaseProgress(phase=phase, processed=0, total=total)
        self._callback = callback

    def advance(self, count: int, batch_num: int) -> PhaseProgress:
        """Record ``count`` more completed items at the end of ``batch_num``."""
        self._progress.processed += count
        self._progress.batch_num = batch_num
        snapshot = self.get_progress()
        _logger.info(
            f"{snapshot.phase}.progress",
            batch_num=batch_num,
            processed=snapshot.processed,
            total=snapshot.total,
            percent=snapshot.percent,
            elapsed_seconds=round(snapshot.elapsed_seconds, 2),
        )
        if self._callback is not None:
            self._callback(snapshot)
        return snapshot

    def get_progress(self) -> PhaseProgress:
        """Return a copy of the current progress."""
        return PhaseProgress(
            phase=self._progress.phase,
            processed=self._progress.processed,
            total=self._progress.total,
            batch_num=self._progress.batch_num,
            started_at=self._progress.started_at,
        )
