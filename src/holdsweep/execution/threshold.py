"""Run counters and the cross-phase error threshold.

The reconciler and the mutator share one ErrorThresholdMonitor. Both record
failures through it and consult it at every batch boundary. Unlike a
self-healing circuit breaker, a tripped threshold never closes again: the
run stops admitting work and ends with a fatal condition.

Example usage:
    counters = RunCounters()
    monitor = ErrorThresholdMonitor(counters, max_errors=10)

    for batch in batches:
        process(batch)          # calls monitor.record_error() on failures
        monitor.raise_if_exceeded("reconciliation")
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any

from holdsweep.core.errors import ThresholdExceededError
from holdsweep.core.logging import get_logger

_logger = get_logger("threshold")


@dataclass
class CounterSnapshot:
    """Point-in-time copy of the run counters."""

    processed: int = 0
    eligible: int = 0
    already_compliant: int = 0
    newly_compliant: int = 0
    errors: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "eligible": self.eligible,
            "already_compliant": self.already_compliant,
            "newly_compliant": self.newly_compliant,
            "errors": self.errors,
            "skipped": self.skipped,
        }


class RunCounters:
    """Process-wide counters for one run.

    Thread-safe: every mutation happens under a lock, so completions from
    concurrent mutation tasks never lose updates. Counters only grow.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._values = CounterSnapshot()

    def increment(self, name: str, amount: int = 1) -> int:
        """Add ``amount`` to the named counter and return its new value."""
        if amount < 0:
            raise ValueError("counters are monotonic; amount must not be negative")
        with self._lock:
            value = getattr(self._values, name) + amount
            setattr(self._values, name, value)
            return value

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(**self._values.to_dict())

    @property
    def errors(self) -> int:
        with self._lock:
            return self._values.errors

    def __repr__(self) -> str:
        return f"RunCounters({self.snapshot().to_dict()})"


class ErrorThresholdMonitor:
    """Shared failure counter with an abort predicate.

    ``check()`` is true once ``errors > max_errors`` and
    ``continue_on_errors`` is not set.

    Attributes:
        counters: The RunCounters holding the error count.
        max_errors: Errors tolerated before aborting.
        continue_on_errors: Never abort when set.
    """

    def __init__(
        self,
        counters: RunCounters,
        max_errors: int = 50,
        continue_on_errors: bool = False,
    ) -> None:
        if max_errors < 0:
            raise ValueError("max_errors must not be negative")
        self.counters = counters
        self.max_errors = max_errors
        self.continue_on_errors = continue_on_errors

    @property
    def errors(self) -> int:
        return self.counters.errors

    def record_error(self, source: str, identity: str | None = None, error: str = "") -> int:
        """Count one failure and return the new error total."""
        total = self.counters.increment("errors")
        _logger.debug(
            "threshold.error_recorded",
            source=source,
            identity=identity,
            error=error,
            errors=total,
            max_errors=self.max_errors,
        )
        return total

    def check(self) -> bool:
        """Return True when the run must stop admitting work."""
        return self.counters.errors > self.max_errors and not self.continue_on_errors

    def raise_if_exceeded(self, phase: str) -> None:
        """Raise ThresholdExceededError if ``check()`` is true.

        Raises:
            ThresholdExceededError: When the threshold is exceeded.
        """
        if not self.check():
            return
        errors = self.counters.errors
        _logger.error(
            "threshold.exceeded",
            phase=phase,
            errors=errors,
            max_errors=self.max_errors,
        )
        raise ThresholdExceededError(errors=errors, max_errors=self.max_errors, phase=phase)

    def __repr__(self) -> str:
        return (
            f"ErrorThresholdMonitor(errors={self.errors}/{self.max_errors}, "
            f"continue_on_errors={self.continue_on_errors})"
        )
