"""Run command for the holdsweep CLI.

Loads the run configuration, applies command-line overrides, runs the
sweep against a tenant snapshot and writes the CSV detail report and JSON
summary. A halted run still writes the partial report before exiting 1.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.panel import Panel
from rich.progress import Progress, TaskID

from holdsweep.core.config import RunConfig
from holdsweep.core.errors import FatalError, ThresholdExceededError
from holdsweep.execution.advisor import detect_available_memory_mb
from holdsweep.execution.progress import PhaseProgress
from holdsweep.execution.runner import SweepRunner
from holdsweep.reporting.aggregator import RunReport
from holdsweep.reporting.sink import ReportPaths, ReportWriter
from holdsweep.services.snapshot import SnapshotDirectory, SnapshotStatusService, SnapshotStore

from ..helpers import apply_config_logging, configure_global_logging, is_quiet, is_verbose
from ..output import console, create_progress_bar, failures_table, settings_panel, summary_table


def run(
    snapshot: Path = typer.Argument(
        ...,
        help="Tenant snapshot YAML to sweep",
        exists=True,
        readable=True,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Run configuration YAML",
        exists=True,
        readable=True,
    ),
    preview: bool = typer.Option(
        False,
        "--preview",
        "-n",
        help="Report what would change without applying anything",
    ),
    batch_size: int | None = typer.Option(
        None,
        "--batch-size",
        "-b",
        min=1,
        help="Override the recommended batch size",
    ),
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        min=1,
        help="Override the recommended concurrency limit",
    ),
    identity_filter: str | None = typer.Option(
        None,
        "--identity-filter",
        "-f",
        help="Only process identities starting with this prefix",
    ),
    license_filter: list[str] | None = typer.Option(
        None,
        "--license",
        "-l",
        help="Only process subjects holding this SKU (repeatable)",
    ),
    max_errors: int | None = typer.Option(
        None,
        "--max-errors",
        min=0,
        help="Halt once this many errors have been recorded",
    ),
    continue_on_errors: bool = typer.Option(
        False,
        "--continue-on-errors",
        help="Never halt on errors, report them instead",
    ),
    memory_mb: int | None = typer.Option(
        None,
        "--memory-mb",
        min=1,
        help="Available memory in MB (detected on this host when omitted)",
    ),
    bandwidth_mbps: float | None = typer.Option(
        None,
        "--bandwidth-mbps",
        min=0.001,
        help="Network bandwidth to the tenant in Mbps",
    ),
    report_dir: Path | None = typer.Option(
        None,
        "--report-dir",
        "-o",
        help="Directory for report files",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the run summary as JSON (live runs also need --yes)",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Apply changes without asking for confirmation",
    ),
) -> None:
    """Enable litigation hold on every eligible mailbox in SNAPSHOT."""
    configure_global_logging(console)

    config = _load_config(config_file)
    if config_file is not None:
        apply_config_logging(config.logging, console)

    try:
        config = _apply_overrides(
            config,
            preview=preview,
            batch_size=batch_size,
            concurrency=concurrency,
            identity_filter=identity_filter,
            license_filter=license_filter,
            max_errors=max_errors,
            continue_on_errors=continue_on_errors,
            memory_mb=memory_mb,
            bandwidth_mbps=bandwidth_mbps,
            report_dir=report_dir,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid option:[/red] {e}")
        raise typer.Exit(1) from None

    quiet = is_quiet() or json_output
    if not quiet:
        mode = "[cyan]preview[/cyan]" if config.preview else "[bold red]live[/bold red]"
        console.print(
            Panel(
                f"[bold]{config.name}[/bold]\n"
                f"Snapshot: {snapshot}\n"
                f"Mode: {mode}\n"
                f"Error threshold: {_threshold_text(config)}",
                title="holdsweep run",
            )
        )

    if not config.preview and not yes:
        if json_output:
            console.print("[red]Error:[/red] --json needs --yes for a live run")
            raise typer.Exit(1)
        if not typer.confirm("Enable litigation hold on all eligible mailboxes?"):
            console.print("[yellow]Cancelled.[/yellow]")
            raise typer.Exit(0)

    asyncio.run(_run_sweep(config, snapshot, json_output=json_output, quiet=quiet))


def _load_config(config_file: Path | None) -> RunConfig:
    if config_file is None:
        return RunConfig()
    try:
        return RunConfig.from_yaml(config_file)
    except Exception as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _apply_overrides(
    config: RunConfig,
    *,
    preview: bool,
    batch_size: int | None,
    concurrency: int | None,
    identity_filter: str | None,
    license_filter: list[str] | None,
    max_errors: int | None,
    continue_on_errors: bool,
    memory_mb: int | None,
    bandwidth_mbps: float | None,
    report_dir: Path | None,
) -> RunConfig:
    """Return a config with command-line values layered over the file values."""
    data = config.model_dump()
    execution = data["execution"]
    errors = data["errors"]
    selection = data["selection"]

    if preview:
        data["preview"] = True
    if batch_size is not None:
        execution["batch_size"] = batch_size
    if concurrency is not None:
        execution["concurrency_limit"] = concurrency
    if memory_mb is not None:
        execution["memory_mb_hint"] = memory_mb
    elif execution["memory_mb_hint"] is None:
        execution["memory_mb_hint"] = detect_available_memory_mb()
    if bandwidth_mbps is not None:
        execution["bandwidth_mbps_hint"] = bandwidth_mbps
    if max_errors is not None:
        errors["max_errors"] = max_errors
    if continue_on_errors:
        errors["continue_on_errors"] = True
    if identity_filter is not None:
        selection["identity_filter"] = identity_filter
    if license_filter:
        selection["licenses"] = license_filter
    if report_dir is not None:
        data["report"]["directory"] = report_dir

    return RunConfig.model_validate(data)


def _threshold_text(config: RunConfig) -> str:
    if config.errors.continue_on_errors:
        return "disabled (continue on errors)"
    return f"{config.errors.max_errors} errors"


class _ProgressDisplay:
    """Feeds phase progress events into a rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self._tasks: dict[str, TaskID] = {}

    def __call__(self, update: PhaseProgress) -> None:
        task = self._tasks.get(update.phase)
        if task is None:
            task = self.progress.add_task(update.phase.capitalize(), total=update.total)
            self._tasks[update.phase] = task
        self.progress.update(task, completed=update.processed)


async def _run_sweep(
    config: RunConfig,
    snapshot: Path,
    *,
    json_output: bool,
    quiet: bool,
) -> None:
    store = SnapshotStore(snapshot)
    directory = SnapshotDirectory(store)
    status_service = SnapshotStatusService(store, persist=not config.preview)

    progress = create_progress_bar(console)
    runner = SweepRunner(
        config,
        directory,
        status_service,
        progress_callback=None if quiet else _ProgressDisplay(progress),
    )
    writer = ReportWriter(config.report.directory, config.report.prefix)

    halted: FatalError | None = None
    try:
        if quiet:
            report = await runner.run()
        else:
            with progress:
                report = await runner.run()
    except ThresholdExceededError as e:
        halted = e
        partial = runner.get_report()
        if partial is None:
            console.print(f"[red]Run halted:[/red] {e}")
            raise typer.Exit(1) from None
        report = partial
    except FatalError as e:
        console.print(f"[red]Run failed:[/red] {e}")
        raise typer.Exit(1) from None
    finally:
        await directory.close()
        await status_service.close()

    paths = writer.write(
        report,
        runner.run_id,
        extra={"run_id": runner.run_id, "name": config.name, "snapshot": str(snapshot)},
    )
    _display_result(runner, report, paths, json_output=json_output, quiet=quiet)

    if halted is not None:
        if not json_output:
            console.print(f"[red]Run halted:[/red] {halted}")
        raise typer.Exit(1)


def _display_result(
    runner: SweepRunner,
    report: RunReport,
    paths: ReportPaths,
    *,
    json_output: bool,
    quiet: bool,
) -> None:
    if json_output:
        document = {
            "run_id": runner.run_id,
            "summary": report.summary.to_dict(),
            "settings": runner.settings.to_dict() if runner.settings else None,
            "reports": {"detail": str(paths.detail), "summary": str(paths.summary)},
        }
        console.print_json(json.dumps(document, default=str))
        return

    if quiet:
        summary = report.summary
        console.print(
            f"eligible={summary.total_eligible} already={summary.already_compliant} "
            f"enabled={summary.newly_enabled} failed={summary.failed}"
        )
        return

    if is_verbose() and runner.settings is not None:
        console.print(settings_panel(runner.settings, report.summary.total_eligible))

    console.print(summary_table(report))
    failures = failures_table(report)
    if failures is not None:
        console.print(failures)

    console.print(f"\n[dim]Detail report:[/dim] {paths.detail}")
    console.print(f"[dim]Summary:[/dim] {paths.summary}")
