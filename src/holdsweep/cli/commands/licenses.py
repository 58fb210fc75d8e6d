"""Licenses command: show the license eligibility table in effect."""

from __future__ import annotations

from pathlib import Path

import typer

from holdsweep.core.config import load_license_table

from ..helpers import configure_global_logging
from ..output import console, license_table_view


def licenses(
    table: Path | None = typer.Option(
        None,
        "--table",
        "-t",
        help="License table YAML (the built-in table is used when omitted or invalid)",
    ),
    eligible_only: bool = typer.Option(
        False,
        "--eligible",
        help="Only list SKUs that support litigation hold",
    ),
) -> None:
    """Show which license SKUs make a mailbox eligible for litigation hold."""
    configure_global_logging(console)

    license_table = load_license_table(table)
    if eligible_only:
        for sku, name in sorted(license_table.eligible_licenses().items()):
            console.print(f"[cyan]{sku}[/cyan]  {name}")
        return

    console.print(license_table_view(license_table))
    eligible = license_table.eligible_licenses()
    console.print(f"\n[dim]{len(eligible)} eligible SKUs[/dim]")
