"""Pytest fixtures for holdsweep tests."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog
import yaml

from holdsweep.core.models import StatusRecord, Subject
from holdsweep.execution.threshold import ErrorThresholdMonitor, RunCounters


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging and CLI state before and after each test."""
    from holdsweep.cli import helpers

    helpers.reset_cli_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_cli_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


def make_subject(identity: str, *licenses: str, enabled: bool = True) -> Subject:
    """Build a subject, defaulting to one hold-capable license."""
    return Subject(
        identity=identity,
        label=identity.split("@")[0].title(),
        enabled=enabled,
        licenses=frozenset(licenses or ("ENTERPRISEPACK",)),
    )


@pytest.fixture
def subjects() -> list[Subject]:
    """Three licensed, enabled subjects."""
    return [
        make_subject("ada@contoso.com"),
        make_subject("grace@contoso.com"),
        make_subject("linus@contoso.com"),
    ]


@pytest.fixture
def counters() -> RunCounters:
    return RunCounters()


@pytest.fixture
def monitor(counters: RunCounters) -> ErrorThresholdMonitor:
    return ErrorThresholdMonitor(counters, max_errors=50)


@pytest.fixture
def compliant_status() -> StatusRecord:
    return StatusRecord(compliance_enabled=True, owner="legal@contoso.com")


@pytest.fixture
def snapshot_data() -> dict:
    """A small tenant snapshot with every interesting subject shape."""
    return {
        "catalog": {
            "sku-e3": "ENTERPRISEPACK",
            "sku-f3": "SPE_F1",
        },
        "subjects": [
            {
                "identity": "ada@contoso.com",
                "label": "Ada Lovelace",
                "licenses": ["sku-e3"],
                "mailbox": {"litigation_hold_enabled": True, "hold_owner": "legal"},
            },
            {
                "identity": "grace@contoso.com",
                "label": "Grace Hopper",
                "licenses": ["sku-e3"],
                "mailbox": {"litigation_hold_enabled": False},
            },
            {
                "identity": "linus@contoso.com",
                "label": "Linus",
                "licenses": ["sku-e3"],
            },
            {
                "identity": "kiosk@contoso.com",
                "label": "Kiosk",
                "licenses": ["sku-f3"],
                "mailbox": {"litigation_hold_enabled": False},
            },
            {
                "identity": "former@contoso.com",
                "label": "Former Employee",
                "enabled": False,
                "licenses": ["sku-e3"],
                "mailbox": {"litigation_hold_enabled": False},
            },
        ],
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict) -> Path:
    path = tmp_path / "tenant.yaml"
    path.write_text(yaml.safe_dump(snapshot_data, sort_keys=False))
    return path
