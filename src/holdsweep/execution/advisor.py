"""Adaptive batch and concurrency recommendations.

Picks base values from an ordered scale ladder keyed on the number of
subjects, then applies memory and bandwidth modifiers in that order. All
functions here are pure so the ladder and each modifier can be tested on
their own.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any

DEFAULT_MEMORY_MB = 4096
DEFAULT_BANDWIDTH_MBPS = 100.0

LOW_MEMORY_MB = 2048
HIGH_MEMORY_MB = 8192
LOW_BANDWIDTH_MBPS = 50.0

MIN_BATCH_SIZE = 50
MAX_BATCH_SIZE = 2000
MIN_CONCURRENCY = 2
MAX_CONCURRENCY = 25

LOW_BANDWIDTH_THROTTLE_MS = 500
DEFAULT_CLEANUP_INTERVAL = 10

WARN_LARGE_ENVIRONMENT = "large environment, prefer off-peak window"
WARN_LOW_MEMORY = "low available memory, batch size and concurrency halved"
WARN_LOW_BANDWIDTH = "limited bandwidth, requests throttled and concurrency reduced"


@dataclass(frozen=True)
class ScaleTier:
    """One rung of the scale ladder.

    Attributes:
        upper_bound: Exclusive subject-count bound (None = no bound).
        batch_size: Base batch size for this tier.
        concurrency_limit: Base concurrency for this tier.
        cleanup_interval: Batches between memory cleanup passes.
        recommended_window: When to run ("any" or "off-peak").
        warning: Advisory warning attached to this tier, if any.
    """

    upper_bound: int | None
    batch_size: int
    concurrency_limit: int
    cleanup_interval: int = DEFAULT_CLEANUP_INTERVAL
    recommended_window: str = "any"
    warning: str | None = None

    def matches(self, total: int) -> bool:
        return self.upper_bound is None or total < self.upper_bound


SCALE_LADDER: tuple[ScaleTier, ...] = (
    ScaleTier(upper_bound=1_000, batch_size=100, concurrency_limit=5),
    ScaleTier(upper_bound=10_000, batch_size=250, concurrency_limit=8),
    ScaleTier(upper_bound=50_000, batch_size=500, concurrency_limit=10),
    ScaleTier(upper_bound=100_000, batch_size=750, concurrency_limit=15),
    ScaleTier(
        upper_bound=None,
        batch_size=1000,
        concurrency_limit=20,
        cleanup_interval=5,
        recommended_window="off-peak",
        warning=WARN_LARGE_ENVIRONMENT,
    ),
)


@dataclass(frozen=True)
class AdvisedSettings:
    """Recommended run settings for an environment."""

    batch_size: int
    concurrency_limit: int
    cleanup_interval: int
    throttle_delay_ms: int = 0
    recommended_window: str = "any"
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "concurrency_limit": self.concurrency_limit,
            "cleanup_interval": self.cleanup_interval,
            "throttle_delay_ms": self.throttle_delay_ms,
            "recommended_window": self.recommended_window,
            "warnings": list(self.warnings),
        }


def select_tier(total_subjects: int) -> ScaleTier:
    """Return the first ladder tier whose bound admits ``total_subjects``."""
    if total_subjects < 0:
        raise ValueError("total_subjects must not be negative")
    for tier in SCALE_LADDER:
        if tier.matches(total_subjects):
            return tier
    raise AssertionError("scale ladder has no unbounded tier")


def apply_memory_modifier(settings: AdvisedSettings, memory_mb: float) -> AdvisedSettings:
    """Scale batch size and concurrency to the available memory."""
    if memory_mb < LOW_MEMORY_MB:
        return replace(
            settings,
            batch_size=max(MIN_BATCH_SIZE, math.floor(settings.batch_size * 0.5)),
            concurrency_limit=max(
                MIN_CONCURRENCY, math.floor(settings.concurrency_limit * 0.5)
            ),
            warnings=(*settings.warnings, WARN_LOW_MEMORY),
        )
    if memory_mb > HIGH_MEMORY_MB:
        return replace(
            settings,
            batch_size=min(MAX_BATCH_SIZE, math.floor(settings.batch_size * 1.5)),
            concurrency_limit=min(
                MAX_CONCURRENCY, math.floor(settings.concurrency_limit * 1.5)
            ),
        )
    return settings


def apply_bandwidth_modifier(
    settings: AdvisedSettings, bandwidth_mbps: float
) -> AdvisedSettings:
    """Throttle and narrow concurrency on slow links."""
    if bandwidth_mbps < LOW_BANDWIDTH_MBPS:
        return replace(
            settings,
            throttle_delay_ms=LOW_BANDWIDTH_THROTTLE_MS,
            concurrency_limit=max(
                MIN_CONCURRENCY, math.floor(settings.concurrency_limit * 0.7)
            ),
            warnings=(*settings.warnings, WARN_LOW_BANDWIDTH),
        )
    return settings


def recommend_settings(
    total_subjects: int,
    memory_mb: float = DEFAULT_MEMORY_MB,
    bandwidth_mbps: float = DEFAULT_BANDWIDTH_MBPS,
) -> AdvisedSettings:
    """Recommend batch, concurrency and pacing settings.

    Args:
        total_subjects: Number of subjects the run will process.
        memory_mb: Available memory hint in megabytes.
        bandwidth_mbps: Available bandwidth hint in megabits per second.

    Returns:
        AdvisedSettings from the ladder tier, with modifiers applied.
    """
    tier = select_tier(total_subjects)
    settings = AdvisedSettings(
        batch_size=tier.batch_size,
        concurrency_limit=tier.concurrency_limit,
        cleanup_interval=tier.cleanup_interval,
        recommended_window=tier.recommended_window,
        warnings=(tier.warning,) if tier.warning else (),
    )
    settings = apply_memory_modifier(settings, memory_mb)
    return apply_bandwidth_modifier(settings, bandwidth_mbps)


def detect_available_memory_mb() -> int:
    """Available system memory in MB, as reported by psutil."""
    import psutil

    return int(psutil.virtual_memory().available / (1024 * 1024))
