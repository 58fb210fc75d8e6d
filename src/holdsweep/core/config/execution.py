"""Execution and error-threshold configuration models.

Defines models for batch sizing, concurrency, call deadlines, environment
hints and the error threshold that halts a run.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ExecutionConfig(BaseModel):
    """Configuration for batch sizing and concurrency.

    Leaving ``batch_size`` or ``concurrency_limit`` unset lets the
    configuration advisor choose them from the environment size and hints.

    Example YAML:
        execution:
          batch_size: 250
          concurrency_limit: 8
          memory_mb_hint: 4096
    """

    batch_size: int | None = Field(
        default=None,
        ge=1,
        le=5000,
        description="Subjects per status-query batch (None = advisor recommendation)",
    )
    concurrency_limit: int | None = Field(
        default=None,
        ge=1,
        le=50,
        description="Maximum simultaneous mutation calls (None = advisor recommendation)",
    )
    call_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=3600,
        description="Deadline for a single call to an external service",
    )
    memory_mb_hint: int | None = Field(
        default=None,
        gt=0,
        description="Available memory in MB (None = the host's available memory from the CLI, else 4096)",
    )
    bandwidth_mbps_hint: float | None = Field(
        default=None,
        gt=0,
        description="Available bandwidth in Mbps (None = assume 100)",
    )


class ErrorThresholdConfig(BaseModel):
    """Configuration for the cross-phase error threshold.

    The run halts once the error count exceeds ``max_errors`` unless
    ``continue_on_errors`` is set, in which case it never halts on errors.
    """

    max_errors: int = Field(
        default=50,
        ge=0,
        description="Errors tolerated before the run is halted",
    )
    continue_on_errors: bool = Field(
        default=False,
        description="Keep processing regardless of the error count",
    )
