"""Status reconciliation phase.

Resolves the current compliance status of every subject, one batch at a
time. Each batch is first looked up with a single aggregate query. If that
query fails the batch degrades to per-subject lookups; a failed per-subject
lookup is counted against the error threshold and the subject is recorded
without a target resource. The batch itself always completes.

After every batch the reconciler reports progress and consults the error
threshold monitor. A tripped threshold stops the remaining batches; results
for the batches already reconciled stay available on ``reconciled``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from holdsweep.core.logging import get_current_context, get_logger, with_context
from holdsweep.core.models import Batch, ReconciledSubject, StatusRecord, Subject
from holdsweep.execution.batching import BatchIterator, maybe_collect
from holdsweep.execution.progress import PhaseTracker, ProgressCallback
from holdsweep.execution.threshold import ErrorThresholdMonitor
from holdsweep.services.base import StatusService

PHASE = "reconciliation"

_logger = get_logger("reconciler")


class StatusReconciler:
    """Resolves a StatusRecord for every subject, batch by batch.

    Example:
        reconciler = StatusReconciler(service, monitor, batch_size=250)
        reconciled = await reconciler.reconcile(subjects)

    Attributes:
        reconciled: Subjects reconciled so far, in input order.
        fallback_batches: Batch numbers that used per-subject fallback.
    """

    def __init__(
        self,
        service: StatusService,
        monitor: ErrorThresholdMonitor,
        batch_size: int,
        *,
        call_timeout_seconds: float = 120.0,
        throttle_delay_ms: int = 0,
        cleanup_interval: int = 0,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.service = service
        self.monitor = monitor
        self.batch_size = batch_size
        self.call_timeout_seconds = call_timeout_seconds
        self.throttle_delay_ms = throttle_delay_ms
        self.cleanup_interval = cleanup_interval
        self.progress_callback = progress_callback
        self.reconciled: list[ReconciledSubject] = []
        self.fallback_batches: list[int] = []

    async def reconcile(self, subjects: Sequence[Subject]) -> list[ReconciledSubject]:
        """Reconcile all subjects.

        Returns:
            Every input subject paired with its StatusRecord, in input order.

        Raises:
            ThresholdExceededError: If the error threshold trips at a batch
                boundary. Batches reconciled before that remain in
                ``reconciled``.
        """
        self.reconciled = []
        self.fallback_batches = []
        batches = BatchIterator(subjects, self.batch_size)
        tracker = PhaseTracker(PHASE, len(subjects), self.progress_callback)

        _logger.info(
            "reconciler.started",
            total=len(subjects),
            batch_size=self.batch_size,
            batches=len(batches),
        )

        ctx = get_current_context()
        for batch in batches:
            if ctx is not None:
                with with_context(ctx.with_batch(batch.index)):
                    results = await self._reconcile_batch(batch)
            else:
                results = await self._reconcile_batch(batch)

            self.reconciled.extend(results)
            self.monitor.counters.increment("processed", len(results))
            compliant = sum(1 for r in results if r.status.compliance_enabled)
            if compliant:
                self.monitor.counters.increment("already_compliant", compliant)

            tracker.advance(len(results), batch.index)
            self.monitor.raise_if_exceeded(PHASE)
            maybe_collect(batch.index, self.cleanup_interval)

            if self.throttle_delay_ms and batch.index < len(batches):
                await asyncio.sleep(self.throttle_delay_ms / 1000)

        _logger.info(
            "reconciler.completed",
            reconciled=len(self.reconciled),
            fallback_batches=len(self.fallback_batches),
            errors=self.monitor.errors,
        )
        return self.reconciled

    async def _reconcile_batch(self, batch: Batch[Subject]) -> list[ReconciledSubject]:
        identities = [subject.identity for subject in batch.items]
        try:
            lookup = await asyncio.wait_for(
                self.service.get_statuses(identities),
                timeout=self.call_timeout_seconds,
            )
        except Exception as e:
            _logger.warning(
                "reconciler.batch_query_failed",
                batch_num=batch.index,
                size=len(batch),
                error_type=type(e).__name__,
                error=str(e),
            )
            self.fallback_batches.append(batch.index)
            return await self._reconcile_individually(batch)

        _logger.debug("reconciler.batch_resolved", batch_num=batch.index, found=len(lookup))
        return [
            ReconciledSubject(subject, lookup.get(subject.identity, StatusRecord.missing()))
            for subject in batch.items
        ]

    async def _reconcile_individually(
        self, batch: Batch[Subject]
    ) -> list[ReconciledSubject]:
        results: list[ReconciledSubject] = []
        for subject in batch.items:
            try:
                status = await asyncio.wait_for(
                    self.service.get_status(subject.identity),
                    timeout=self.call_timeout_seconds,
                )
            except Exception as e:
                self.monitor.record_error(PHASE, subject.identity, str(e))
                _logger.warning(
                    "reconciler.subject_query_failed",
                    identity=subject.identity,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                status = StatusRecord.missing()
            results.append(ReconciledSubject(subject, status))
        return results
