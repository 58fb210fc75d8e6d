"""Configuration models for holdsweep.

Pydantic models for loading and validating YAML run configuration and the
license eligibility table. All models are re-exported here.
"""

from holdsweep.core.config.execution import ErrorThresholdConfig, ExecutionConfig
from holdsweep.core.config.licenses import (
    DEFAULT_LICENSE_TABLE,
    LicenseEntry,
    LicenseTable,
    load_license_table,
    parse_license_table,
)
from holdsweep.core.config.reporting import LogConfig, ReportConfig
from holdsweep.core.config.run import RunConfig
from holdsweep.core.config.selection import SelectionConfig

__all__ = [
    "DEFAULT_LICENSE_TABLE",
    "ErrorThresholdConfig",
    "ExecutionConfig",
    "LicenseEntry",
    "LicenseTable",
    "LogConfig",
    "ReportConfig",
    "RunConfig",
    "SelectionConfig",
    "load_license_table",
    "parse_license_table",
]
