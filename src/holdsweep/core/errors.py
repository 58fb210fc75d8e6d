"""Exception hierarchy for holdsweep.

All holdsweep exceptions inherit from HoldsweepError. Only FatalError
subclasses terminate a run; the others are recovered inside their batch.
"""

from __future__ import annotations


class HoldsweepError(Exception):
    """Base exception for all holdsweep errors."""


class StatusQueryError(HoldsweepError):
    """A status lookup against the status service failed.

    For an aggregate (batch) query the reconciler falls back to per-subject
    queries; for a per-subject query the subject is recorded without a
    target resource and the shared error counter is incremented.
    """


class MutationError(HoldsweepError):
    """Applying the compliance setting to a single subject failed.

    Recorded as a failed OperationOutcome, never propagated past its batch.
    """


class ConfigurationInvalidError(HoldsweepError):
    """The license eligibility table could not be loaded or validated."""


class FatalError(HoldsweepError):
    """Non-recoverable condition that stops the run."""


class PreconditionError(FatalError):
    """A required external service is unavailable before processing starts."""


class ThresholdExceededError(FatalError):
    """Accumulated failures passed the configured cap.

    Attributes:
        errors: Error count at the time of the check.
        max_errors: Configured cap.
        phase: Phase that observed the breach.
    """

    def __init__(self, errors: int, max_errors: int, phase: str) -> None:
        self.errors = errors
        self.max_errors = max_errors
        self.phase = phase
        super().__init__(
            f"Error threshold exceeded during {phase}: "
            f"{errors} errors (maximum allowed {max_errors})"
        )


__all__ = [
    "ConfigurationInvalidError",
    "FatalError",
    "HoldsweepError",
    "MutationError",
    "PreconditionError",
    "StatusQueryError",
    "ThresholdExceededError",
]
