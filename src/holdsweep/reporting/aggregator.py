"""Run report aggregation.

Joins the eligible subjects, their reconciled status and the mutation
outcomes by identity. Every subject is classified into exactly one
SubjectAction, checked in this order:

1. already_compliant     status shows the setting already enabled
2. no_target_resource    no mailbox to apply the setting to
3. preview_would_enable  a preview outcome exists
4. enabled               a live outcome succeeded
5. failed                a live outcome failed
6. no_action_required    anything else, including subjects the run never
                         reached because it halted early
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from holdsweep.core.models import (
    OperationOutcome,
    ReconciledSubject,
    StatusRecord,
    Subject,
    SubjectAction,
)
from holdsweep.utils.time import format_duration, utc_now

if TYPE_CHECKING:
    from holdsweep.execution.threshold import CounterSnapshot

NOTE_HALTED_BEFORE_STATUS = "run halted before status was resolved"
NOTE_HALTED_BEFORE_MUTATION = "run halted before the setting was applied"


@dataclass(frozen=True)
class SubjectReport:
    """One row of the detailed report."""

    subject: Subject
    action: SubjectAction
    status: StatusRecord | None = None
    outcome: OperationOutcome | None = None
    note: str | None = None

    def to_row(self, reported_at: datetime) -> dict[str, Any]:
        """Flatten to a CSV-friendly row.

        Rows without an outcome are stamped with ``reported_at``.
        """
        status = self.status
        timestamp = self.outcome.timestamp if self.outcome else reported_at
        return {
            "identity": self.subject.identity,
            "label": self.subject.label,
            "compliance_enabled": "" if status is None else status.compliance_enabled,
            "has_target_resource": "" if status is None else status.has_target_resource,
            "enabled_date": (
                status.enabled_date.isoformat() if status and status.enabled_date else ""
            ),
            "owner": (status.owner or "") if status else "",
            "licenses": ";".join(sorted(self.subject.licenses)),
            "action": self.action.value,
            "error": (self.outcome.error_message or "") if self.outcome else "",
            "note": self.note or "",
            "timestamp": timestamp.isoformat(),
        }


@dataclass
class RunSummary:
    """Summary of a sweep run for display and the JSON report."""

    total_eligible: int = 0
    already_compliant: int = 0
    newly_enabled: int = 0
    failed: int = 0
    no_target_resource: int = 0
    no_action_required: int = 0
    total_errors: int = 0
    processed: int = 0
    skipped: int = 0
    elapsed_seconds: float = 0.0
    preview: bool = False
    halted: bool = False
    halt_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "halted" if self.halted else "completed",
            "preview": self.preview,
            "total_eligible": self.total_eligible,
            "already_compliant": self.already_compliant,
            "newly_enabled": self.newly_enabled,
            "failed": self.failed,
            "no_target_resource": self.no_target_resource,
            "no_action_required": self.no_action_required,
            "total_errors": self.total_errors,
            "processed": self.processed,
            "skipped": self.skipped,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "elapsed_formatted": format_duration(self.elapsed_seconds),
            "halt_reason": self.halt_reason,
        }


@dataclass
class RunReport:
    """Per-subject rows plus the run summary."""

    rows: list[SubjectReport] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    generated_at: datetime = field(default_factory=utc_now)

    def action_counts(self) -> dict[SubjectAction, int]:
        counts = Counter(row.action for row in self.rows)
        return {action: counts.get(action, 0) for action in SubjectAction}


def classify(status: StatusRecord | None, outcome: OperationOutcome | None) -> SubjectAction:
    """Classify one subject from its status and outcome."""
    if status is not None and status.compliance_enabled:
        return SubjectAction.ALREADY_COMPLIANT
    if status is not None and not status.has_target_resource:
        return SubjectAction.NO_TARGET_RESOURCE
    if outcome is not None:
        if outcome.is_preview:
            return SubjectAction.PREVIEW_WOULD_ENABLE
        return SubjectAction.ENABLED if outcome.success else SubjectAction.FAILED
    return SubjectAction.NO_ACTION_REQUIRED


class ReportAggregator:
    """Builds the RunReport for a finished or halted run."""

    def aggregate(
        self,
        subjects: Sequence[Subject],
        reconciled: Sequence[ReconciledSubject],
        outcomes: Sequence[OperationOutcome],
        *,
        counters: CounterSnapshot,
        elapsed_seconds: float,
        preview: bool,
        halt_reason: str | None = None,
    ) -> RunReport:
        """Join subjects with status and outcomes.

        Args:
            subjects: The eligible subjects, in processing order.
            reconciled: Subjects reconciled before the run finished or halted.
            outcomes: Outcomes recorded by the mutation phase.
            counters: Final counter values.
            elapsed_seconds: Wall-clock duration of the run.
            preview: Whether the run was a preview.
            halt_reason: Set when the run halted on a fatal condition.

        Returns:
            A RunReport with exactly one row per subject.
        """
        statuses = {r.identity: r.status for r in reconciled}
        by_identity = {o.identity: o for o in outcomes}
        halted = halt_reason is not None

        rows: list[SubjectReport] = []
        for subject in subjects:
            status = statuses.get(subject.identity)
            outcome = by_identity.get(subject.identity)
            action = classify(status, outcome)
            note = None
            if halted and action is SubjectAction.NO_ACTION_REQUIRED:
                note = (
                    NOTE_HALTED_BEFORE_STATUS if status is None else NOTE_HALTED_BEFORE_MUTATION
                )
            rows.append(SubjectReport(subject, action, status, outcome, note))

        counts = Counter(row.action for row in rows)
        summary = RunSummary(
            total_eligible=len(subjects),
            already_compliant=counts[SubjectAction.ALREADY_COMPLIANT],
            newly_enabled=(
                counts[SubjectAction.ENABLED] + counts[SubjectAction.PREVIEW_WOULD_ENABLE]
            ),
            failed=counts[SubjectAction.FAILED],
            no_target_resource=counts[SubjectAction.NO_TARGET_RESOURCE],
            no_action_required=counts[SubjectAction.NO_ACTION_REQUIRED],
            total_errors=counters.errors,
            processed=counters.processed,
            skipped=counters.skipped,
            elapsed_seconds=elapsed_seconds,
            preview=preview,
            halted=halted,
            halt_reason=halt_reason,
        )
        return RunReport(rows=rows, summary=summary, generated_at=utc_now())
