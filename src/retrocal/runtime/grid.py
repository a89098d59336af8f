"""
Grid math for schedule start times and interval lengths.

Pure functions; no schedule, no clocks beyond "now" when no reference
instant is given. All durations are integer milliseconds.
"""

from __future__ import annotations

from datetime import timedelta, timezone

from retrocal.infra.settings import DAY_IN_MILLIS
from retrocal.shared.instant import Instant

HOUR_IN_MILLIS = 60 * 60 * 1000

__all__ = ["DAY_IN_MILLIS", "HOUR_IN_MILLIS", "days", "hours", "next_hour"]


def days(count: float) -> int:
    """Milliseconds in ``count`` days (fractions allowed)."""
    return round(count * DAY_IN_MILLIS)


def hours(count: float) -> int:
    """Milliseconds in ``count`` hours (fractions allowed)."""
    return round(count * HOUR_IN_MILLIS)


def next_hour(from_: Instant | None = None) -> Instant:
    """Top of the hour following ``from_`` (default: now), in UTC.

    An instant already on the hour still moves to the next one.
    """
    now = (from_ or Instant.now()).to_datetime().astimezone(timezone.utc)
    top = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return Instant.from_datetime(top)
