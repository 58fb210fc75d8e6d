"""Report aggregation and report files."""

from holdsweep.reporting.aggregator import (
    ReportAggregator,
    RunReport,
    RunSummary,
    SubjectReport,
    classify,
)
from holdsweep.reporting.sink import ReportPaths, ReportWriter

__all__ = [
    "ReportAggregator",
    "ReportPaths",
    "ReportWriter",
    "RunReport",
    "RunSummary",
    "SubjectReport",
    "classify",
]
