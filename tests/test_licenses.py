"""Tests for holdsweep.core.config.licenses module."""

from pathlib import Path

import pytest
import yaml
from structlog.testing import capture_logs

from holdsweep.core.config.licenses import (
    DEFAULT_LICENSE_TABLE,
    LicenseTable,
    load_license_table,
    parse_license_table,
)
from holdsweep.core.errors import ConfigurationInvalidError


class TestLicenseTable:
    """Tests for the validated license table."""

    def test_default_table_eligible_skus(self):
        eligible = DEFAULT_LICENSE_TABLE.eligible_licenses()
        assert "ENTERPRISEPACK" in eligible
        assert "SPE_E5" in eligible
        assert "SPE_F1" not in eligible
        assert "EXCHANGESTANDARD" not in eligible

    def test_sku_names_normalized(self):
        table = LicenseTable.model_validate({
            "categories": {
                "custom": {" spe_e3 ": {"display_name": "E3", "litigation_hold_supported": True}}
            }
        })
        assert list(table.entries()) == ["SPE_E3"]

    def test_duplicate_sku_across_categories_rejected(self):
        data = {
            "categories": {
                "a": {"SPE_E3": {"display_name": "E3"}},
                "b": {"spe_e3": {"display_name": "E3 again"}},
            }
        }
        with pytest.raises(ConfigurationInvalidError, match="more than one category"):
            parse_license_table(data)

    def test_empty_table_rejected(self):
        with pytest.raises(ConfigurationInvalidError):
            parse_license_table({"categories": {}})

    def test_missing_display_name_rejected(self):
        with pytest.raises(ConfigurationInvalidError):
            parse_license_table({"categories": {"a": {"SPE_E3": {}}}})


class TestLoadLicenseTable:
    """Tests for loading with fallback."""

    def test_none_returns_default(self):
        assert load_license_table(None) is DEFAULT_LICENSE_TABLE

    def test_valid_file(self, tmp_path: Path):
        path = tmp_path / "licenses.yaml"
        path.write_text(
            yaml.safe_dump({
                "categories": {
                    "gov": {
                        "ENTERPRISEPACK_GOV": {
                            "display_name": "Office 365 G3",
                            "litigation_hold_supported": True,
                        }
                    }
                }
            })
        )
        table = load_license_table(path)
        assert table.eligible_licenses() == {"ENTERPRISEPACK_GOV": "Office 365 G3"}

    def test_malformed_yaml_falls_back_with_warning(self, tmp_path: Path):
        path = tmp_path / "licenses.yaml"
        path.write_text("categories: [unclosed")

        with capture_logs() as logs:
            table = load_license_table(path)

        assert table is DEFAULT_LICENSE_TABLE
        assert any(
            entry["event"] == "licenses.table_invalid_using_default"
            and entry["log_level"] == "warning"
            for entry in logs
        )

    def test_invalid_schema_falls_back(self, tmp_path: Path):
        path = tmp_path / "licenses.yaml"
        path.write_text(yaml.safe_dump({"categories": "not-a-mapping"}))
        assert load_license_table(path) is DEFAULT_LICENSE_TABLE

    def test_missing_file_falls_back(self, tmp_path: Path):
        assert load_license_table(tmp_path / "nope.yaml") is DEFAULT_LICENSE_TABLE
