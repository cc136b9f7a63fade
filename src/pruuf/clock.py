"""Injected wall-clock provider.

Services never read the system clock themselves; they receive ``now`` from
a :data:`Clock`. HTTP handlers get it through the ``get_clock`` dependency and
workers through :func:`system_clock`, so tests can pin time to DST and
date-boundary edges.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def fixed_clock(instant: datetime) -> Clock:
    """Clock frozen at ``instant`` (naive values are taken as UTC)."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return lambda: instant


def get_clock() -> Clock:
    """FastAPI dependency returning the active clock."""
    return system_clock


def utc_today(now: datetime) -> date:
    """UTC calendar date of ``now``."""
    return now.astimezone(timezone.utc).date()


def utc_day_start(day: date) -> datetime:
    """00:00:00 UTC of ``day``."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def utc_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC interval covering ``day``."""
    start = utc_day_start(day)
    return start, start + timedelta(days=1)
