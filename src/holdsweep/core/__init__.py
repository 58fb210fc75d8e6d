"""Core domain models, configuration, errors and logging."""

from holdsweep.core.config import LicenseTable, RunConfig
from holdsweep.core.errors import (
    FatalError,
    HoldsweepError,
    PreconditionError,
    ThresholdExceededError,
)
from holdsweep.core.models import (
    Batch,
    OperationOutcome,
    ReconciledSubject,
    StatusRecord,
    Subject,
    SubjectAction,
)

__all__ = [
    "Batch",
    "FatalError",
    "HoldsweepError",
    "LicenseTable",
    "OperationOutcome",
    "PreconditionError",
    "ReconciledSubject",
    "RunConfig",
    "StatusRecord",
    "Subject",
    "SubjectAction",
    "ThresholdExceededError",
]
