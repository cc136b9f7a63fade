"""Local-time to absolute-time conversion for ping scheduling.

A sender's check-in time is a wall-clock time in whatever zone their device
last reported ("9 AM local" follows the sender when they travel). Each day's
ping gets the UTC instant whose local representation on that date reads the
configured time.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_MINUTES = 90


def resolve_zone(name: str | None) -> ZoneInfo | timezone:
    """Look up an IANA zone, falling back to UTC for unknown or empty names."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return timezone.utc


def scheduled_instant(ping_time: time, day: date, tz_name: str | None) -> datetime:
    """UTC instant of ``ping_time`` on ``day`` in zone ``tz_name``.

    DST is handled by zoneinfo. A wall time that does not exist (skipped by a
    spring-forward jump) is interpreted with the pre-transition offset, which
    lands it after the jump; an ambiguous fall-back time takes the first
    occurrence.
    """
    zone = resolve_zone(tz_name)
    local = datetime.combine(day, ping_time.replace(tzinfo=None, microsecond=0)).replace(tzinfo=zone, fold=0)
    return local.astimezone(timezone.utc)


def deadline_for(scheduled: datetime, minutes: int = DEFAULT_DEADLINE_MINUTES) -> datetime:
    """Fixed grace window after the scheduled instant."""
    return scheduled + timedelta(minutes=minutes)


def is_late(deadline: datetime, now: datetime) -> bool:
    """A completion strictly after the deadline is late."""
    return now > deadline
