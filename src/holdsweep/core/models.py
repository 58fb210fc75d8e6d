"""Domain models shared by the sweep pipeline.

Subjects come from directory enumeration and never change during a run.
Status records and operation outcomes are produced by the two pipeline
phases and joined by identity when the report is built.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from holdsweep.utils.time import utc_now

T = TypeVar("T")


@dataclass(frozen=True)
class Subject:
    """An account discovered in the directory.

    Attributes:
        identity: Unique principal key (user principal name).
        label: Display name.
        enabled: Whether the account is enabled.
        licenses: SKU identifiers assigned to the account.
    """

    identity: str
    label: str = ""
    enabled: bool = True
    licenses: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class StatusRecord:
    """Compliance status of one subject as reported by the status service."""

    compliance_enabled: bool = False
    enabled_date: datetime | None = None
    owner: str | None = None
    has_target_resource: bool = True

    @classmethod
    def missing(cls) -> StatusRecord:
        """Status for a subject whose mailbox could not be found or queried."""
        return cls(compliance_enabled=False, has_target_resource=False)


@dataclass(frozen=True)
class ReconciledSubject:
    """A subject paired with the status resolved for it."""

    subject: Subject
    status: StatusRecord

    @property
    def identity(self) -> str:
        return self.subject.identity

    @property
    def requires_action(self) -> bool:
        """True when the compliance setting has to be applied."""
        return not self.status.compliance_enabled and self.status.has_target_resource


@dataclass(frozen=True)
class Batch(Generic[T]):
    """Contiguous slice of an ordered collection.

    Attributes:
        index: 1-based sequence number.
        items: The items in this window.
    """

    index: int
    items: Sequence[T]

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class OperationOutcome:
    """Result of applying (or previewing) the compliance change for one subject."""

    identity: str
    success: bool
    error_message: str | None = None
    timestamp: datetime = field(default_factory=utc_now)
    is_preview: bool = False
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "success": self.success,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
            "is_preview": self.is_preview,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class SubjectAction(str, Enum):
    """Final per-subject classification in the report."""

    ALREADY_COMPLIANT = "already_compliant"
    NO_TARGET_RESOURCE = "no_target_resource"
    PREVIEW_WOULD_ENABLE = "preview_would_enable"
    ENABLED = "enabled"
    FAILED = "failed"
    NO_ACTION_REQUIRED = "no_action_required"


__all__ = [
    "Batch",
    "OperationOutcome",
    "ReconciledSubject",
    "StatusRecord",
    "Subject",
    "SubjectAction",
]
