"""Top-level run configuration."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from holdsweep.core.config.execution import ErrorThresholdConfig, ExecutionConfig
from holdsweep.core.config.reporting import LogConfig, ReportConfig
from holdsweep.core.config.selection import SelectionConfig


class RunConfig(BaseModel):
    """Complete configuration for one sweep run.

    Example YAML:
        name: weekly-sweep
        preview: true
        execution:
          batch_size: 500
        errors:
          max_errors: 25
        selection:
          identity_filter: "emea-"
    """

    name: str = Field(default="holdsweep", min_length=1)
    preview: bool = Field(
        default=False,
        description="Compute and report intended changes without applying them",
    )
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    errors: ErrorThresholdConfig = Field(default_factory=ErrorThresholdConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> RunConfig:
        """Load run configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> RunConfig:
        """Load run configuration from a YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data or {})
