"""Advise command: recommended settings for a population size."""

from __future__ import annotations

import json

import typer

from holdsweep.execution.advisor import (
    DEFAULT_BANDWIDTH_MBPS,
    detect_available_memory_mb,
    recommend_settings,
)

from ..helpers import configure_global_logging, is_quiet
from ..output import console, settings_panel


def advise(
    total: int = typer.Argument(..., min=0, help="Number of subjects to process"),
    memory_mb: int | None = typer.Option(
        None,
        "--memory-mb",
        min=1,
        help="Available memory in MB (detected on this host when omitted)",
    ),
    bandwidth_mbps: float = typer.Option(
        DEFAULT_BANDWIDTH_MBPS,
        "--bandwidth-mbps",
        min=0.001,
        help="Network bandwidth to the tenant in Mbps",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output settings as JSON",
    ),
) -> None:
    """Show recommended batch size, concurrency and throttling for TOTAL subjects."""
    configure_global_logging(console)

    if memory_mb is None:
        memory_mb = detect_available_memory_mb()

    settings = recommend_settings(total, memory_mb=memory_mb, bandwidth_mbps=bandwidth_mbps)

    if json_output:
        console.print_json(json.dumps(settings.to_dict()))
        return

    if is_quiet():
        console.print(f"{settings.batch_size} {settings.concurrency_limit}")
        return

    console.print(settings_panel(settings, total))
    console.print(f"[dim]Memory: {memory_mb} MB, bandwidth: {bandwidth_mbps:g} Mbps[/dim]")
