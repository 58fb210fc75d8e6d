"""Bulk application of the compliance setting.

Subjects that need the setting are processed in sub-batches of at most
MUTATION_BATCH_CAP, smaller than the read batches, so fewer destructive
calls are in flight when the service starts failing.

Within a sub-batch every subject gets its own task. Tasks are admitted
through a semaphore, so no more than ``concurrency_limit`` mutation calls
run at once and the rest wait for a free slot. The coordinator waits for
the whole sub-batch (a TaskGroup barrier) before checking the error
threshold and moving on. In-flight calls are never cancelled; a tripped
threshold only stops further sub-batches from being scheduled.

In preview mode no call is made and a successful preview outcome is
recorded for every subject.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from holdsweep.core.logging import get_current_context, get_logger, with_context
from holdsweep.core.models import Batch, OperationOutcome, ReconciledSubject, Subject
from holdsweep.execution.batching import BatchIterator, maybe_collect
from holdsweep.execution.progress import PhaseTracker, ProgressCallback
from holdsweep.execution.threshold import ErrorThresholdMonitor
from holdsweep.services.base import StatusService
from holdsweep.utils.time import utc_now

PHASE = "mutation"
MUTATION_BATCH_CAP = 100

_logger = get_logger("mutator")


def select_for_mutation(reconciled: Sequence[ReconciledSubject]) -> list[Subject]:
    """Subjects without the setting that do have a target resource."""
    return [r.subject for r in reconciled if r.requires_action]


class BulkMutator:
    """Bounded-concurrency worker pool for the compliance change.

    Example:
        mutator = BulkMutator(service, monitor, batch_size=500, concurrency_limit=10)
        outcomes = await mutator.apply(select_for_mutation(reconciled))

    Attributes:
        outcomes: Outcomes recorded so far, in scheduling order.
    """

    def __init__(
        self,
        service: StatusService,
        monitor: ErrorThresholdMonitor,
        batch_size: int,
        concurrency_limit: int,
        *,
        preview: bool = False,
        call_timeout_seconds: float = 120.0,
        throttle_delay_ms: int = 0,
        cleanup_interval: int = 0,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self.service = service
        self.monitor = monitor
        self.batch_size = batch_size
        self.concurrency_limit = concurrency_limit
        self.preview = preview
        self.call_timeout_seconds = call_timeout_seconds
        self.throttle_delay_ms = throttle_delay_ms
        self.cleanup_interval = cleanup_interval
        self.progress_callback = progress_callback
        self.outcomes: list[OperationOutcome] = []

    @property
    def sub_batch_size(self) -> int:
        return min(self.batch_size, MUTATION_BATCH_CAP)

    async def apply(self, subjects: Sequence[Subject]) -> list[OperationOutcome]:
        """Apply (or preview) the compliance setting for ``subjects``.

        Returns:
            One OperationOutcome per subject that was scheduled.

        Raises:
            ThresholdExceededError: If the threshold trips after a
                sub-batch. Outcomes recorded before that stay in
                ``outcomes``.
        """
        self.outcomes = []
        if not subjects:
            _logger.info("mutator.nothing_to_do")
            return self.outcomes

        batches = BatchIterator(subjects, self.sub_batch_size)
        tracker = PhaseTracker(PHASE, len(subjects), self.progress_callback)
        semaphore = asyncio.Semaphore(self.concurrency_limit)

        _logger.info(
            "mutator.started",
            total=len(subjects),
            sub_batch_size=self.sub_batch_size,
            sub_batches=len(batches),
            concurrency_limit=self.concurrency_limit,
            preview=self.preview,
        )

        ctx = get_current_context()
        for batch in batches:
            if self.preview:
                results = self._preview_batch(batch)
            elif ctx is not None:
                with with_context(ctx.with_batch(batch.index)):
                    results = await self._run_batch(batch, semaphore)
            else:
                results = await self._run_batch(batch, semaphore)

            self.outcomes.extend(results)
            failed = sum(1 for o in results if not o.success)
            _logger.info(
                "mutator.sub_batch_complete",
                batch_num=batch.index,
                succeeded=len(results) - failed,
                failed=failed,
            )

            tracker.advance(len(results), batch.index)
            self.monitor.raise_if_exceeded(PHASE)
            maybe_collect(batch.index, self.cleanup_interval)

            if self.throttle_delay_ms and not self.preview and batch.index < len(batches):
                await asyncio.sleep(self.throttle_delay_ms / 1000)

        _logger.info(
            "mutator.completed",
            outcomes=len(self.outcomes),
            failed=sum(1 for o in self.outcomes if not o.success),
            preview=self.preview,
        )
        return self.outcomes

    def _preview_batch(self, batch: Batch[Subject]) -> list[OperationOutcome]:
        return [
            OperationOutcome(identity=subject.identity, success=True, is_preview=True)
            for subject in batch.items
        ]

    async def _run_batch(
        self,
        batch: Batch[Subject],
        semaphore: asyncio.Semaphore,
    ) -> list[OperationOutcome]:
        # Per-subject failures are caught inside _apply_one, so the group
        # only raises on cancellation.
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(
                    self._apply_one(subject, semaphore),
                    name=f"mutate-{subject.identity}",
                )
                for subject in batch.items
            ]
        return [task.result() for task in tasks]

    async def _apply_one(
        self,
        subject: Subject,
        semaphore: asyncio.Semaphore,
    ) -> OperationOutcome:
        async with semaphore:
            started = time.monotonic()
            try:
                await asyncio.wait_for(
                    self.service.set_compliance(subject.identity, enabled=True),
                    timeout=self.call_timeout_seconds,
                )
            except Exception as e:
                message = str(e) or type(e).__name__
                self.monitor.record_error(PHASE, subject.identity, message)
                _logger.warning(
                    "mutator.subject_failed",
                    identity=subject.identity,
                    error_type=type(e).__name__,
                    error=message,
                )
                return OperationOutcome(
                    identity=subject.identity,
                    success=False,
                    error_message=message,
                    timestamp=utc_now(),
                    duration_seconds=time.monotonic() - started,
                )

        self.monitor.counters.increment("newly_compliant")
        _logger.debug("mutator.subject_enabled", identity=subject.identity)
        return OperationOutcome(
            identity=subject.identity,
            success=True,
            timestamp=utc_now(),
            duration_seconds=time.monotonic() - started,
        )
