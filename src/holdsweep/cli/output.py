"""Rich output formatting for the holdsweep CLI.

Centralizes the console instance, action colors, and the table, panel and
progress bar builders used by the commands.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from holdsweep.core.config import LicenseTable
from holdsweep.core.models import SubjectAction
from holdsweep.execution.advisor import AdvisedSettings
from holdsweep.reporting.aggregator import RunReport
from holdsweep.utils.time import format_duration

console = Console()

ACTION_COLORS: dict[SubjectAction, str] = {
    SubjectAction.ALREADY_COMPLIANT: "green",
    SubjectAction.NO_TARGET_RESOURCE: "dim",
    SubjectAction.PREVIEW_WOULD_ENABLE: "cyan",
    SubjectAction.ENABLED: "bold green",
    SubjectAction.FAILED: "red",
    SubjectAction.NO_ACTION_REQUIRED: "yellow",
}


def create_progress_bar(console: Console) -> Progress:
    """Progress bar used for both pipeline phases."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def settings_panel(settings: AdvisedSettings, total: int | None = None) -> Panel:
    lines = []
    if total is not None:
        lines.append(f"Subjects: {total}")
    lines.extend([
        f"Batch size: {settings.batch_size}",
        f"Concurrency limit: {settings.concurrency_limit}",
        f"Cleanup interval: every {settings.cleanup_interval} batches",
        f"Throttle delay: {settings.throttle_delay_ms} ms",
        f"Recommended window: {settings.recommended_window}",
    ])
    for warning in settings.warnings:
        lines.append(f"[yellow]Warning: {warning}[/yellow]")
    return Panel("\n".join(lines), title="Recommended Settings")


def summary_table(report: RunReport) -> Table:
    """Summary table for a finished or halted run."""
    summary = report.summary
    title = "Preview Summary" if summary.preview else "Run Summary"
    if summary.halted:
        title += " [red](halted)[/red]"

    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    enabled_label = "Would enable" if summary.preview else "Newly enabled"
    table.add_row("Eligible subjects", str(summary.total_eligible))
    table.add_row("Already compliant", f"[green]{summary.already_compliant}[/green]")
    table.add_row(enabled_label, f"[cyan]{summary.newly_enabled}[/cyan]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]")
    table.add_row("No mailbox", str(summary.no_target_resource))
    table.add_row("No action required", str(summary.no_action_required))
    table.add_row("Skipped (ineligible)", str(summary.skipped))
    table.add_row("Total errors", str(summary.total_errors))
    table.add_row("Elapsed", format_duration(summary.elapsed_seconds))
    return table


def failures_table(report: RunReport, limit: int = 20) -> Table | None:
    """Table of failed subjects, or None when nothing failed."""
    failed = [row for row in report.rows if row.action is SubjectAction.FAILED]
    if not failed:
        return None
    table = Table(title=f"Failures ({len(failed)})")
    table.add_column("Identity", style="cyan")
    table.add_column("Error", style="red")
    for row in failed[:limit]:
        error = (row.outcome.error_message or "") if row.outcome else ""
        table.add_row(row.subject.identity, error)
    if len(failed) > limit:
        table.add_row("...", f"{len(failed) - limit} more in the detail report")
    return table


def license_table_view(table: LicenseTable) -> Table:
    view = Table(title="License Eligibility")
    view.add_column("Category", style="bold")
    view.add_column("SKU", style="cyan")
    view.add_column("Plan")
    view.add_column("Litigation hold", justify="center")
    for category, entries in table.categories.items():
        for sku, entry in entries.items():
            supported = "[green]yes[/green]" if entry.litigation_hold_supported else "[dim]no[/dim]"
            view.add_row(category, sku, entry.display_name, supported)
    return view
