"""Tests for holdsweep.execution.advisor module."""

import pytest

from holdsweep.execution.advisor import (
    DEFAULT_CLEANUP_INTERVAL,
    LOW_BANDWIDTH_THROTTLE_MS,
    SCALE_LADDER,
    WARN_LARGE_ENVIRONMENT,
    WARN_LOW_BANDWIDTH,
    WARN_LOW_MEMORY,
    AdvisedSettings,
    apply_bandwidth_modifier,
    apply_memory_modifier,
    detect_available_memory_mb,
    recommend_settings,
    select_tier,
)


class TestScaleLadder:
    """Tests for tier selection on the ladder alone."""

    @pytest.mark.parametrize(
        "total,batch_size,concurrency",
        [
            (500, 100, 5),
            (5_000, 250, 8),
            (40_000, 500, 10),
            (90_000, 750, 15),
            (150_000, 1000, 20),
        ],
    )
    def test_default_hints_match_ladder(self, total, batch_size, concurrency):
        settings = recommend_settings(total)
        assert settings.batch_size == batch_size
        assert settings.concurrency_limit == concurrency

    @pytest.mark.parametrize(
        "total,expected_batch",
        [(0, 100), (999, 100), (1_000, 250), (9_999, 250), (10_000, 500), (100_000, 1000)],
    )
    def test_tier_boundaries_are_exclusive(self, total, expected_batch):
        assert select_tier(total).batch_size == expected_batch

    def test_last_tier_is_unbounded(self):
        assert SCALE_LADDER[-1].upper_bound is None
        assert select_tier(10_000_000) is SCALE_LADDER[-1]

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError):
            select_tier(-1)

    def test_large_environment_warns_and_prefers_off_peak(self):
        settings = recommend_settings(150_000)
        assert settings.recommended_window == "off-peak"
        assert WARN_LARGE_ENVIRONMENT in settings.warnings
        assert settings.cleanup_interval == 5

    def test_small_environment_has_no_warnings(self):
        settings = recommend_settings(500)
        assert settings.warnings == ()
        assert settings.recommended_window == "any"
        assert settings.cleanup_interval == DEFAULT_CLEANUP_INTERVAL
        assert settings.throttle_delay_ms == 0


class TestMemoryModifier:
    """Tests for memory-based scaling."""

    def test_low_memory_halves_large_tier(self):
        settings = recommend_settings(150_000, memory_mb=1024)
        assert settings.batch_size == 500
        assert settings.concurrency_limit == 10
        assert WARN_LOW_MEMORY in settings.warnings

    def test_low_memory_respects_floors(self):
        settings = recommend_settings(500, memory_mb=512)
        assert settings.batch_size == 50
        assert settings.concurrency_limit == 2

    def test_high_memory_scales_up_with_caps(self):
        settings = recommend_settings(150_000, memory_mb=16_384)
        assert settings.batch_size == 1500
        assert settings.concurrency_limit == 25  # floor(20 * 1.5) = 30, capped

    def test_high_memory_adds_no_warning(self):
        settings = recommend_settings(500, memory_mb=16_384)
        assert settings.warnings == ()

    def test_mid_range_memory_unchanged(self):
        base = AdvisedSettings(batch_size=250, concurrency_limit=8, cleanup_interval=10)
        assert apply_memory_modifier(base, 2048) == base
        assert apply_memory_modifier(base, 8192) == base


class TestBandwidthModifier:
    """Tests for bandwidth-based throttling."""

    def test_low_bandwidth_throttles(self):
        base = AdvisedSettings(batch_size=500, concurrency_limit=10, cleanup_interval=10)
        settings = apply_bandwidth_modifier(base, 20.0)
        assert settings.throttle_delay_ms == LOW_BANDWIDTH_THROTTLE_MS
        assert settings.concurrency_limit == 7
        assert settings.batch_size == 500
        assert WARN_LOW_BANDWIDTH in settings.warnings

    def test_low_bandwidth_concurrency_floor(self):
        base = AdvisedSettings(batch_size=50, concurrency_limit=2, cleanup_interval=10)
        assert apply_bandwidth_modifier(base, 1.0).concurrency_limit == 2

    def test_threshold_is_exclusive(self):
        base = AdvisedSettings(batch_size=500, concurrency_limit=10, cleanup_interval=10)
        assert apply_bandwidth_modifier(base, 50.0) == base

    def test_modifiers_compose_in_order(self):
        """Memory modifier applies first, bandwidth to its result."""
        settings = recommend_settings(150_000, memory_mb=1024, bandwidth_mbps=10.0)
        assert settings.batch_size == 500
        assert settings.concurrency_limit == 7  # floor(floor(20 * 0.5) * 0.7)
        assert settings.throttle_delay_ms == LOW_BANDWIDTH_THROTTLE_MS
        assert settings.warnings == (
            WARN_LARGE_ENVIRONMENT,
            WARN_LOW_MEMORY,
            WARN_LOW_BANDWIDTH,
        )


class TestAdvisedSettings:
    def test_to_dict(self):
        result = recommend_settings(150_000).to_dict()
        assert result["batch_size"] == 1000
        assert result["recommended_window"] == "off-peak"
        assert result["warnings"] == [WARN_LARGE_ENVIRONMENT]

    def test_detected_memory_is_positive(self):
        assert detect_available_memory_mb() > 0
