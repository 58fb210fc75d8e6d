"""Report files: per-subject CSV detail and a JSON summary."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path

from holdsweep.core.logging import get_logger
from holdsweep.reporting.aggregator import RunReport

CSV_COLUMNS = [
    "identity",
    "label",
    "compliance_enabled",
    "has_target_resource",
    "enabled_date",
    "owner",
    "licenses",
    "action",
    "error",
    "note",
    "timestamp",
]

_logger = get_logger("report_sink")


@dataclass(frozen=True)
class ReportPaths:
    detail: Path
    summary: Path


class ReportWriter:
    """Writes a RunReport into a directory.

    File names are ``{prefix}-{stamp}-detail.csv`` and
    ``{prefix}-{stamp}-summary.json``.
    """

    def __init__(self, directory: Path, prefix: str = "holdsweep") -> None:
        self.directory = directory
        self.prefix = prefix

    def paths_for(self, stamp: str) -> ReportPaths:
        base = f"{self.prefix}-{stamp}"
        return ReportPaths(
            detail=self.directory / f"{base}-detail.csv",
            summary=self.directory / f"{base}-summary.json",
        )

    def write(self, report: RunReport, stamp: str, extra: dict | None = None) -> ReportPaths:
        """Write both report files and return their paths.

        Args:
            report: The report to write.
            stamp: Unique token for the file names (usually the run id).
            extra: Additional top-level keys for the summary document.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        paths = self.paths_for(stamp)

        with open(paths.detail, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for row in report.rows:
                writer.writerow(row.to_row(report.generated_at))

        document = {
            **(extra or {}),
            "generated_at": report.generated_at.isoformat(),
            "summary": report.summary.to_dict(),
            "actions": {
                action.value: count for action, count in report.action_counts().items()
            },
        }
        paths.summary.write_text(json.dumps(document, indent=2, default=str), encoding="utf-8")

        _logger.info(
            "report.written",
            detail=str(paths.detail),
            summary=str(paths.summary),
            rows=len(report.rows),
        )
        return paths
