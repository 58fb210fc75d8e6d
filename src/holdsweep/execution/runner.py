"""Sweep orchestration.

SweepRunner drives one run end to end:

1. preflight     both services must pass their health check
2. enumeration   list subjects and the license catalog
3. eligibility   keep enabled subjects holding a hold-capable license
4. reconciliation  resolve status in batches (StatusReconciler)
5. mutation      apply the setting where needed (BulkMutator)
6. report        classify every eligible subject (ReportAggregator)

The runner owns the RunCounters and the ErrorThresholdMonitor for the run
and hands them to both phases. When a fatal condition stops the run after
processing began, the partial report is still built and kept available
through ``get_report()`` before the error is re-raised.
"""

from __future__ import annotations

import time
from dataclasses import replace

from holdsweep.core.config import LicenseTable, RunConfig, load_license_table
from holdsweep.core.errors import PreconditionError, ThresholdExceededError
from holdsweep.core.logging import RunContext, get_logger, with_context
from holdsweep.core.models import OperationOutcome, ReconciledSubject, Subject
from holdsweep.execution.advisor import (
    DEFAULT_BANDWIDTH_MBPS,
    DEFAULT_MEMORY_MB,
    AdvisedSettings,
    recommend_settings,
)
from holdsweep.execution.eligibility import LicenseEligibility
from holdsweep.execution.mutator import BulkMutator, select_for_mutation
from holdsweep.execution.progress import ProgressCallback
from holdsweep.execution.reconciler import StatusReconciler
from holdsweep.execution.threshold import ErrorThresholdMonitor, RunCounters
from holdsweep.reporting.aggregator import ReportAggregator, RunReport
from holdsweep.services.base import DirectorySource, StatusService

_logger = get_logger("runner")


def resolve_settings(config: RunConfig, total_subjects: int) -> AdvisedSettings:
    """Advisor recommendation for ``total_subjects`` with config overrides applied."""
    execution = config.execution
    advised = recommend_settings(
        total_subjects,
        memory_mb=execution.memory_mb_hint or DEFAULT_MEMORY_MB,
        bandwidth_mbps=execution.bandwidth_mbps_hint or DEFAULT_BANDWIDTH_MBPS,
    )
    if execution.batch_size is not None:
        advised = replace(advised, batch_size=execution.batch_size)
    if execution.concurrency_limit is not None:
        advised = replace(advised, concurrency_limit=execution.concurrency_limit)
    return advised


class SweepRunner:
    """Runs the two-phase litigation hold sweep.

    Example:
        runner = SweepRunner(config, directory, status_service)
        report = await runner.run()

    Attributes:
        config: Run configuration.
        counters: Counters for this run.
        monitor: Error threshold shared by both phases.
        settings: Effective batch/concurrency settings, set once the
            eligible population is known.
    """

    def __init__(
        self,
        config: RunConfig,
        directory: DirectorySource,
        status_service: StatusService,
        *,
        license_table: LicenseTable | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.directory = directory
        self.status_service = status_service
        self.license_table = license_table
        self.progress_callback = progress_callback
        self.counters = RunCounters()
        self.monitor = ErrorThresholdMonitor(
            self.counters,
            max_errors=config.errors.max_errors,
            continue_on_errors=config.errors.continue_on_errors,
        )
        self.context = RunContext(run_name=config.name)
        self.settings: AdvisedSettings | None = None
        self.eligible: list[Subject] = []
        self._report: RunReport | None = None

    @property
    def run_id(self) -> str:
        return self.context.run_id

    def get_report(self) -> RunReport | None:
        """Report of the last run, including a partial one after a halt."""
        return self._report

    async def preflight(self) -> None:
        """Verify both services before any phase starts.

        Raises:
            PreconditionError: If a service is unreachable or unauthenticated.
        """
        for service in (self.directory, self.status_service):
            try:
                healthy = await service.health_check()
            except Exception as e:
                raise PreconditionError(
                    f"{service.name} health check failed: {e}"
                ) from e
            if not healthy:
                raise PreconditionError(
                    f"{service.name} is not available (check authentication and connectivity)"
                )
        _logger.info(
            "runner.preflight_passed",
            directory=self.directory.name,
            status_service=self.status_service.name,
        )

    async def run(self) -> RunReport:
        """Execute the sweep.

        Returns:
            The RunReport for every eligible subject.

        Raises:
            PreconditionError: Before any processing, if a service is unusable.
            ThresholdExceededError: If the error threshold trips. The
                partial report is available from ``get_report()``.
        """
        self._report = None
        started = time.monotonic()

        with with_context(self.context):
            _logger.info("runner.started", preview=self.config.preview)
            await self.preflight()

            with with_context(self.context.with_phase("enumeration")):
                self.eligible = await self._enumerate()

            self.settings = resolve_settings(self.config, len(self.eligible))
            for warning in self.settings.warnings:
                _logger.warning("runner.advisory", message=warning)
            _logger.info("runner.settings", **self.settings.to_dict())

            reconciler = StatusReconciler(
                self.status_service,
                self.monitor,
                self.settings.batch_size,
                call_timeout_seconds=self.config.execution.call_timeout_seconds,
                throttle_delay_ms=self.settings.throttle_delay_ms,
                cleanup_interval=self.settings.cleanup_interval,
                progress_callback=self.progress_callback,
            )
            mutator = BulkMutator(
                self.status_service,
                self.monitor,
                self.settings.batch_size,
                self.settings.concurrency_limit,
                preview=self.config.preview,
                call_timeout_seconds=self.config.execution.call_timeout_seconds,
                throttle_delay_ms=self.settings.throttle_delay_ms,
                cleanup_interval=self.settings.cleanup_interval,
                progress_callback=self.progress_callback,
            )

            try:
                with with_context(self.context.with_phase("reconciliation")):
                    reconciled = await reconciler.reconcile(self.eligible)
                with with_context(self.context.with_phase("mutation")):
                    outcomes = await mutator.apply(select_for_mutation(reconciled))
            except ThresholdExceededError as e:
                self._report = self._build_report(
                    reconciler.reconciled, mutator.outcomes, started, halt_reason=str(e)
                )
                _logger.error(
                    "runner.halted",
                    reason=str(e),
                    **self._report.summary.to_dict(),
                )
                raise

            self._report = self._build_report(reconciled, outcomes, started)
            _logger.info("runner.completed", **self._report.summary.to_dict())
            return self._report

    async def _enumerate(self) -> list[Subject]:
        selection = self.config.selection
        try:
            subjects = await self.directory.list_subjects(selection.identity_filter)
            catalog = await self.directory.list_license_catalog()
        except Exception as e:
            raise PreconditionError(f"Directory enumeration failed: {e}") from e

        table = self.license_table or load_license_table(selection.license_table)
        eligibility = LicenseEligibility(
            table,
            catalog,
            license_filter=selection.licenses,
            include_disabled=selection.include_disabled,
        )
        result = eligibility.select(subjects)
        self.counters.increment("eligible", len(result.eligible))
        self.counters.increment("skipped", result.skipped)
        return result.eligible

    def _build_report(
        self,
        reconciled: list[ReconciledSubject],
        outcomes: list[OperationOutcome],
        started: float,
        halt_reason: str | None = None,
    ) -> RunReport:
        return ReportAggregator().aggregate(
            self.eligible,
            reconciled,
            outcomes,
            counters=self.counters.snapshot(),
            elapsed_seconds=time.monotonic() - started,
            preview=self.config.preview,
            halt_reason=halt_reason,
        )
