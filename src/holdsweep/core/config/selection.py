"""Subject selection configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class SelectionConfig(BaseModel):
    """Which directory subjects are considered for the sweep.

    Example YAML:
        selection:
          identity_filter: "finance-"
          licenses: [ENTERPRISEPACK]
          license_table: config/licenses.yaml
    """

    identity_filter: str | None = Field(
        default=None,
        description="Identity prefix passed to the directory source",
    )
    licenses: list[str] = Field(
        default_factory=list,
        description="Restrict eligibility to these SKU names (empty = all eligible SKUs)",
    )
    include_disabled: bool = Field(
        default=False,
        description="Also process accounts that are disabled in the directory",
    )
    license_table: Path | None = Field(
        default=None,
        description="YAML license eligibility table (None = built-in table)",
    )

    @field_validator("licenses")
    @classmethod
    def _normalize_licenses(cls, v: list[str]) -> list[str]:
        return [sku.strip().upper() for sku in v if sku.strip()]
