"""Sweep execution: advisor, batching, the two pipeline phases and the runner."""

from holdsweep.execution.advisor import AdvisedSettings, recommend_settings
from holdsweep.execution.batching import BatchIterator
from holdsweep.execution.eligibility import EligibilityResult, LicenseEligibility
from holdsweep.execution.mutator import BulkMutator, select_for_mutation
from holdsweep.execution.reconciler import StatusReconciler
from holdsweep.execution.runner import SweepRunner, resolve_settings
from holdsweep.execution.threshold import ErrorThresholdMonitor, RunCounters

__all__ = [
    "AdvisedSettings",
    "BatchIterator",
    "BulkMutator",
    "EligibilityResult",
    "ErrorThresholdMonitor",
    "LicenseEligibility",
    "RunCounters",
    "StatusReconciler",
    "SweepRunner",
    "recommend_settings",
    "resolve_settings",
    "select_for_mutation",
]
