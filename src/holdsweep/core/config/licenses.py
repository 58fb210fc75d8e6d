"""License eligibility table.

The table maps license SKU names to plan metadata, grouped by category, and
records whether each plan entitles its holder to litigation hold. It is
loaded once per run from YAML; an unusable table is replaced by the
built-in default with a warning rather than failing the run.

Example YAML:
    categories:
      enterprise:
        ENTERPRISEPACK:
          display_name: Office 365 E3
          litigation_hold_supported: true
      frontline:
        SPE_F1:
          display_name: Microsoft 365 F3
          litigation_hold_supported: false
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from holdsweep.core.errors import ConfigurationInvalidError
from holdsweep.core.logging import get_logger

_logger = get_logger("licenses")


class LicenseEntry(BaseModel):
    """Metadata for one license SKU."""

    display_name: str = Field(min_length=1)
    litigation_hold_supported: bool = False


class LicenseTable(BaseModel):
    """License SKUs grouped by category."""

    categories: dict[str, dict[str, LicenseEntry]] = Field(min_length=1)

    @field_validator("categories")
    @classmethod
    def _normalize_sku_names(
        cls, v: dict[str, dict[str, LicenseEntry]]
    ) -> dict[str, dict[str, LicenseEntry]]:
        normalized: dict[str, dict[str, LicenseEntry]] = {}
        seen: set[str] = set()
        for category, entries in v.items():
            normalized[category] = {}
            for sku, entry in entries.items():
                key = sku.strip().upper()
                if key in seen:
                    raise ValueError(f"SKU {key} is listed in more than one category")
                seen.add(key)
                normalized[category][key] = entry
        return normalized

    def entries(self) -> dict[str, LicenseEntry]:
        """Flatten categories into a single SKU -> entry mapping."""
        flat: dict[str, LicenseEntry] = {}
        for entries in self.categories.values():
            flat.update(entries)
        return flat

    def eligible_licenses(self) -> dict[str, str]:
        """SKU name -> plan display name for every hold-capable license."""
        return {
            sku: entry.display_name
            for sku, entry in self.entries().items()
            if entry.litigation_hold_supported
        }


def _entry(name: str, supported: bool) -> LicenseEntry:
    return LicenseEntry(display_name=name, litigation_hold_supported=supported)


DEFAULT_LICENSE_TABLE = LicenseTable(
    categories={
        "enterprise": {
            "ENTERPRISEPACK": _entry("Office 365 E3", True),
            "ENTERPRISEPREMIUM": _entry("Office 365 E5", True),
            "SPE_E3": _entry("Microsoft 365 E3", True),
            "SPE_E5": _entry("Microsoft 365 E5", True),
        },
        "business": {
            "SPB": _entry("Microsoft 365 Business Premium", True),
            "O365_BUSINESS_PREMIUM": _entry("Microsoft 365 Business Standard", False),
            "O365_BUSINESS_ESSENTIALS": _entry("Microsoft 365 Business Basic", False),
        },
        "exchange": {
            "EXCHANGEENTERPRISE": _entry("Exchange Online (Plan 2)", True),
            "EXCHANGEARCHIVE_ADDON": _entry("Exchange Online Archiving", True),
            "EXCHANGESTANDARD": _entry("Exchange Online (Plan 1)", False),
        },
        "frontline": {
            "SPE_F1": _entry("Microsoft 365 F3", False),
            "DESKLESSPACK": _entry("Office 365 F3", False),
        },
        "education": {
            "M365EDU_A3_FACULTY": _entry("Microsoft 365 A3 for faculty", True),
            "M365EDU_A5_FACULTY": _entry("Microsoft 365 A5 for faculty", True),
        },
    }
)


def parse_license_table(data: object) -> LicenseTable:
    """Validate raw YAML data as a license table.

    Raises:
        ConfigurationInvalidError: If the data does not match the schema.
    """
    try:
        return LicenseTable.model_validate(data)
    except ValidationError as e:
        raise ConfigurationInvalidError(f"Invalid license table: {e}") from e


def load_license_table(path: Path | None) -> LicenseTable:
    """Load the license table, falling back to the built-in default.

    A missing, unreadable or malformed file is logged as a warning and the
    default table is returned.
    """
    if path is None:
        return DEFAULT_LICENSE_TABLE

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        table = parse_license_table(data)
    except (OSError, yaml.YAMLError, ConfigurationInvalidError) as e:
        _logger.warning(
            "licenses.table_invalid_using_default",
            path=str(path),
            error_type=type(e).__name__,
            error=str(e),
        )
        return DEFAULT_LICENSE_TABLE

    _logger.info(
        "licenses.table_loaded",
        path=str(path),
        skus=len(table.entries()),
        eligible=len(table.eligible_licenses()),
    )
    return table
