"""Shared utilities for holdsweep CLI commands.

Holds the global output level and logging options set by the top-level
callbacks, and the helpers that turn them into a configured logger.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

import typer
from rich.console import Console

from holdsweep.core.config import LogConfig
from holdsweep.core.logging import configure_logging, get_logger

_logger = get_logger("cli")


class OutputLevel(str, Enum):
    """Output verbosity level."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


_output_level: OutputLevel = OutputLevel.NORMAL


def set_output_level(level: OutputLevel) -> None:
    global _output_level
    _output_level = level


def is_verbose() -> bool:
    return _output_level == OutputLevel.VERBOSE


def is_quiet() -> bool:
    return _output_level == OutputLevel.QUIET


@dataclass
class CliLoggingConfig:
    """Logging options collected from global CLI flags."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False
    explicit: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    _log_config.level = level.upper()  # type: ignore[assignment]
    _log_config.explicit = True


def set_log_file(path: Path | None) -> None:
    _log_config.file = path
    _log_config.explicit = True


def set_log_format(fmt: str) -> None:
    _log_config.format = fmt  # type: ignore[assignment]
    _log_config.explicit = True


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options, once per session.

    Raises:
        typer.Exit: If the logging options are inconsistent.
    """
    if _log_config.configured:
        return
    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except (ValueError, AttributeError) as e:
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None


def apply_config_logging(log_config: LogConfig, console: Console) -> None:
    """Reconfigure logging from a run config file.

    Global ``--log-*`` flags take precedence; when any was given the
    config file's logging section is ignored.
    """
    if _log_config.explicit:
        return
    try:
        configure_logging(
            level=log_config.level,
            format=log_config.format,
            file_path=log_config.file_path,
            max_file_size_mb=log_config.max_file_size_mb,
            backup_count=log_config.backup_count,
        )
    except (ValueError, OSError) as e:
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None
    _log_config.configured = True
    _logger.debug("cli.logging_from_config", level=log_config.level, format=log_config.format)


def reset_cli_state() -> None:
    """Reset global CLI state (used by tests)."""
    global _output_level
    _output_level = OutputLevel.NORMAL
    _log_config.level = "WARNING"
    _log_config.file = None
    _log_config.format = "console"
    _log_config.configured = False
    _log_config.explicit = False
