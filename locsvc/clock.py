"""Wall-clock helpers used for timestamps and log prefixes."""

from __future__ import annotations

import time

_MICROS_PER_SECOND = 1_000_000
_MICROS_PER_MILLI = 1_000


def system_time(clock: int = 0) -> int:
    """Return the current wall-clock time in microseconds since the epoch.

    The ``clock`` selector is accepted for interface compatibility and ignored.
    """
    del clock
    return time.time_ns() // 1_000


def elapsed_millis_since_boot() -> int:
    """Return the current time in milliseconds, derived from :func:`system_time`."""
    return system_time(0) // _MICROS_PER_MILLI


def timestamp_prefix(seconds: int, microseconds: int) -> str:
    """Format a log prefix of the form ``HH:MM:SS.uuuuuu]`` (UTC time of day)."""
    hours = seconds // 3600 % 24
    minutes = seconds % 3600 // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{microseconds:06d}]"