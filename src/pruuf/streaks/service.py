"""Consecutive-day check-in streaks.

Rules:
  1. A day counts when any of its pings is completed or on_break.
  2. Breaks never break a streak; they count like completions.
  3. A missed day ends the streak; a missed today means a streak of 0.
  4. Late completions count; they are still proof of life.

Days with no ping at all before the streak starts are skipped while
searching backward, so a sender who joined recently, or has a data gap
ahead of their current run, is not penalized for it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import utc_today
from pruuf.db.models import Connection, Ping
from pruuf.errors import NotFoundError
from pruuf.pings.status import QUALIFYING_DAY_STATUSES, PingStatus, collapse_day

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 730
MAX_LOOKBACK_DAYS = 730


def collapse_by_day(pings: Iterable[tuple[date, str]]) -> dict[date, str]:
    """One status per calendar day, by the shared day-status order."""
    grouped: dict[date, list[str]] = defaultdict(list)
    for day, status in pings:
        grouped[day].append(status)
    return {day: collapse_day(statuses) for day, statuses in grouped.items()}  # type: ignore[misc]


def compute_streak(day_statuses: Mapping[date, str], today: date) -> int:
    """Walk backward from today counting qualifying days."""
    if not day_statuses:
        return 0

    today_status = day_statuses.get(today)
    if today_status == PingStatus.MISSED.value:
        return 0

    streak = 0
    counting = False
    if today_status in QUALIFYING_DAY_STATUSES:
        streak = 1
        counting = True

    earliest = min(day_statuses)
    horizon = today - timedelta(days=MAX_LOOKBACK_DAYS)
    current = today - timedelta(days=1)

    while current >= earliest and current >= horizon:
        status = day_statuses.get(current)
        if status in QUALIFYING_DAY_STATUSES:
            streak += 1
            counting = True
        elif status == PingStatus.MISSED.value:
            break
        elif counting:
            # A gap, or a day left pending, after the run began.
            break
        current -= timedelta(days=1)

    return streak


async def resolve_connection(db: AsyncSession, connection_id: str) -> tuple[str, str]:
    """(sender_id, receiver_id) of a connection."""
    result = await db.execute(
        select(Connection.sender_id, Connection.receiver_id).where(Connection.id == connection_id)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Connection not found")
    return row.sender_id, row.receiver_id


async def calculate_streak(
    db: AsyncSession,
    sender_id: str,
    now: datetime,
    receiver_id: str | None = None,
    limit: int = HISTORY_LIMIT,
) -> int:
    """Streak for a sender, optionally scoped to a single receiver."""
    stmt = (
        select(Ping.ping_date, Ping.status)
        .where(Ping.sender_id == sender_id)
        .order_by(Ping.scheduled_time.desc())
        .limit(limit)
    )
    if receiver_id:
        stmt = stmt.where(Ping.receiver_id == receiver_id)

    rows = (await db.execute(stmt)).tuples().all()
    streak = compute_streak(collapse_by_day(rows), utc_today(now))
    logger.info("Streak for sender %s (receiver=%s): %d", sender_id, receiver_id or "all", streak)
    return streak
