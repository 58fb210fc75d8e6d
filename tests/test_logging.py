"""Tests for holdsweep.core.logging module."""

import json
import logging
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from holdsweep.core.logging import (
    RunContext,
    _add_context,
    _sanitize_event_dict,
    configure_logging,
    get_current_context,
    get_logger,
    with_context,
)


class TestRunContext:
    def test_run_id_generated(self):
        a = RunContext(run_name="sweep")
        b = RunContext(run_name="sweep")
        assert a.run_id != b.run_id

    def test_with_phase_clears_batch(self):
        ctx = RunContext(run_name="sweep").with_phase("reconciliation").with_batch(3)
        moved = ctx.with_phase("mutation")
        assert moved.phase == "mutation"
        assert moved.batch_num is None
        assert moved.run_id == ctx.run_id

    def test_to_dict_drops_unset(self):
        ctx = RunContext(run_name="sweep", run_id="r1")
        assert ctx.to_dict() == {"run_name": "sweep", "run_id": "r1"}
        assert ctx.with_batch(2).to_dict()["batch_num"] == 2

    def test_with_context_restores_previous(self):
        outer = RunContext(run_name="outer")
        inner = outer.with_phase("mutation")
        assert get_current_context() is None
        with with_context(outer):
            with with_context(inner):
                assert get_current_context() is inner
            assert get_current_context() is outer
        assert get_current_context() is None


class TestProcessors:
    def test_sensitive_values_redacted(self):
        event = {
            "event": "service.connect",
            "client_secret": "hunter2",
            "headers": {"Authorization": "Bearer abc", "accept": "json"},
            "identity": "ada@contoso.com",
        }
        result = _sanitize_event_dict(None, "info", event)
        assert result["client_secret"] == "[REDACTED]"
        assert result["headers"]["Authorization"] == "[REDACTED]"
        assert result["headers"]["accept"] == "json"
        assert result["identity"] == "ada@contoso.com"

    def test_context_added_without_overriding(self):
        ctx = RunContext(run_name="sweep", run_id="r1", phase="mutation")
        with with_context(ctx):
            result = _add_context(None, "info", {"event": "x", "phase": "explicit"})
        assert result["run_id"] == "r1"
        assert result["phase"] == "explicit"

    def test_no_context_is_noop(self):
        assert _add_context(None, "info", {"event": "x"}) == {"event": "x"}


class TestHoldsweepLogger:
    def test_component_bound(self):
        logger = get_logger("mutator")
        with capture_logs() as logs:
            logger.info("mutator.started", total=3)
        assert logs[0]["event"] == "mutator.started"
        assert logs[0]["component"] == "mutator"
        assert logs[0]["total"] == 3

    def test_bind_adds_context(self):
        logger = get_logger("runner").bind(run_name="weekly")
        with capture_logs() as logs:
            logger.warning("runner.advisory", message="slow link")
        assert logs[0]["run_name"] == "weekly"
        assert logs[0]["log_level"] == "warning"


class TestConfigureLogging:
    def test_both_requires_file(self):
        with pytest.raises(ValueError, match="file_path is required"):
            configure_logging(format="both")

    def test_json_to_file(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "holdsweep.log"
        configure_logging(level="INFO", format="json", file_path=log_file)

        with with_context(RunContext(run_name="sweep", run_id="r1")):
            get_logger("runner").info("runner.started", preview=True, token="abc")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "runner.started"
        assert record["run_id"] == "r1"
        assert record["token"] == "[REDACTED]"
        assert "timestamp" in record

    def test_level_filters(self, tmp_path: Path):
        log_file = tmp_path / "holdsweep.log"
        configure_logging(level="WARNING", format="json", file_path=log_file)

        logger = get_logger("runner")
        logger.info("runner.quiet")
        logger.warning("runner.loud")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text()
        assert "runner.loud" in content
        assert "runner.quiet" not in content
