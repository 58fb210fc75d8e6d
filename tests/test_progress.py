"""Tests for holdsweep.execution.progress module."""

from datetime import timedelta

from holdsweep.execution.progress import PhaseProgress, PhaseTracker
from holdsweep.utils.time import format_duration, utc_now


class TestPhaseProgress:
    def test_percent(self):
        assert PhaseProgress("mutation", processed=25, total=200).percent == 12.5

    def test_empty_phase_is_complete(self):
        assert PhaseProgress("mutation", processed=0, total=0).percent == 100.0

    def test_elapsed_seconds(self):
        progress = PhaseProgress(
            "reconciliation",
            processed=500,
            total=1200,
            started_at=utc_now() - timedelta(seconds=5),
        )
        assert progress.percent == 41.7
        assert 5.0 <= progress.elapsed_seconds < 60.0

    def test_to_dict(self):
        result = PhaseProgress("mutation", processed=1, total=4, batch_num=1).to_dict()
        assert result["phase"] == "mutation"
        assert result["percent"] == 25.0
        assert result["batch_num"] == 1


class TestPhaseTracker:
    def test_advance_accumulates_and_notifies(self):
        updates = []
        tracker = PhaseTracker("reconciliation", 10, updates.append)

        tracker.advance(4, 1)
        tracker.advance(6, 2)

        assert [(u.processed, u.batch_num) for u in updates] == [(4, 1), (10, 2)]
        assert tracker.get_progress().percent == 100.0

    def test_snapshots_are_independent(self):
        tracker = PhaseTracker("mutation", 10)
        first = tracker.advance(3, 1)
        tracker.advance(3, 2)
        assert first.processed == 3


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(4.0) == "4.0s"

    def test_minutes(self):
        assert format_duration(123) == "2m 3s"

    def test_hours(self):
        assert format_duration(3720) == "1h 2m"
