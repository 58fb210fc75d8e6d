"""Utility helpers for holdsweep."""

from holdsweep.utils.time import format_duration, utc_now

__all__ = ["format_duration", "utc_now"]
