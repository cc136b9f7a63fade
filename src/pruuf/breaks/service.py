"""Break calendar: sender-declared date ranges with no check-in requirement.

Whether a day is "on break" is purely a date comparison against breaks in
``scheduled`` or ``active`` state. The status bookkeeping done by
:func:`refresh_break_statuses` is cosmetic for clients; generation never
depends on it, so a break ending today still covers today and tomorrow's
ping is ``pending`` again without any "break ended" event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import utc_today
from pruuf.db.models import Break, Connection, Ping
from pruuf.errors import BreakValidationError, NotFoundError
from pruuf.notifications.base import NotificationDispatcher, safe_dispatch
from pruuf.pings.status import ConnectionStatus, PingStatus, sources_for

logger = logging.getLogger(__name__)

SUPPRESSING_STATUSES = ("scheduled", "active")
LONG_BREAK_DAYS = 365


@dataclass
class ScheduledBreak:
    """A newly created break plus an optional duration warning."""

    record: Break
    warning: str | None = None


def is_on_break(breaks: Iterable[Break], day: date) -> bool:
    """True if any scheduled/active break covers ``day`` (inclusive range)."""
    return any(
        b.status in SUPPRESSING_STATUSES and b.start_date <= day <= b.end_date
        for b in breaks
    )


async def get_breaks_covering(
    db: AsyncSession, sender_ids: Iterable[str], day: date
) -> dict[str, list[Break]]:
    """Suppressing breaks that cover ``day``, grouped by sender."""
    ids = list(set(sender_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Break).where(
            Break.sender_id.in_(ids),
            Break.status.in_(SUPPRESSING_STATUSES),
            Break.start_date <= day,
            Break.end_date >= day,
        )
    )
    grouped: dict[str, list[Break]] = defaultdict(list)
    for b in result.scalars():
        grouped[b.sender_id].append(b)
    return grouped


async def is_sender_on_break(db: AsyncSession, sender_id: str, day: date) -> bool:
    """Single-sender form of :func:`is_on_break`."""
    grouped = await get_breaks_covering(db, [sender_id], day)
    return is_on_break(grouped.get(sender_id, []), day)


def validate_break_dates(start: date, end: date, today: date) -> str | None:
    """Raise BreakValidationError for bad ranges; return a warning for very long ones."""
    if start < today:
        raise BreakValidationError("Start date cannot be in the past")
    if end < start:
        raise BreakValidationError("End date must be on or after start date")
    if (end - start).days > LONG_BREAK_DAYS:
        return "Breaks longer than 1 year may affect your account"
    return None


async def has_overlapping_break(
    db: AsyncSession,
    sender_id: str,
    start: date,
    end: date,
    exclude_break_id: str | None = None,
) -> bool:
    """[A, B] and [C, D] overlap iff A <= D and C <= B."""
    stmt = select(Break.id).where(
        Break.sender_id == sender_id,
        Break.status.in_(SUPPRESSING_STATUSES),
        Break.start_date <= end,
        Break.end_date >= start,
    )
    if exclude_break_id is not None:
        stmt = stmt.where(Break.id != exclude_break_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _active_receiver_ids(db: AsyncSession, sender_id: str) -> list[str]:
    result = await db.execute(
        select(Connection.receiver_id).where(
            Connection.sender_id == sender_id,
            Connection.status == ConnectionStatus.ACTIVE.value,
        )
    )
    return list(result.scalars())


async def schedule_break(
    db: AsyncSession,
    sender_id: str,
    start: date,
    end: date,
    now: datetime,
    notes: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> ScheduledBreak:
    """Create a break for ``sender_id``.

    A break starting today is ``active`` at once, and the sender's pending
    pings for today switch to ``on_break``.
    """
    today = utc_today(now)
    warning = validate_break_dates(start, end, today)
    if await has_overlapping_break(db, sender_id, start, end):
        raise BreakValidationError("Break overlaps an existing scheduled or active break")

    starts_today = start <= today
    record = Break(
        sender_id=sender_id,
        start_date=start,
        end_date=end,
        status="active" if starts_today else "scheduled",
        notes=notes,
        created_at=now,
    )
    db.add(record)

    if starts_today:
        await db.execute(
            update(Ping)
            .where(
                Ping.sender_id == sender_id,
                Ping.status.in_(sources_for(PingStatus.ON_BREAK.value)),
                Ping.ping_date == today,
            )
            .values(status=PingStatus.ON_BREAK.value)
        )

    await db.commit()
    logger.info("Break %s scheduled for sender %s (%s..%s)", record.id, sender_id, start, end)

    receivers = await _active_receiver_ids(db, sender_id)
    await safe_dispatch(
        dispatcher,
        "break_started",
        sender_id,
        receivers,
        {"break_id": record.id, "start_date": start.isoformat(), "end_date": end.isoformat()},
    )
    return ScheduledBreak(record=record, warning=warning)


async def _get_sender_break(db: AsyncSession, break_id: str, sender_id: str) -> Break:
    result = await db.execute(select(Break).where(Break.id == break_id, Break.sender_id == sender_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError("Break not found")
    return record


async def _revert_on_break_pings(db: AsyncSession, record: Break, today: date) -> int:
    """Hand the break's on_break pings from today onward back to pending.

    Days another scheduled or active break still covers keep their status.
    """
    first, last = max(record.start_date, today), record.end_date
    if last < first:
        return 0
    reverting_from = sources_for(PingStatus.PENDING.value)
    candidates = await db.execute(
        select(Ping.id, Ping.ping_date).where(
            Ping.sender_id == record.sender_id,
            Ping.status.in_(reverting_from),
            Ping.ping_date >= first,
            Ping.ping_date <= last,
        )
    )
    others = await db.execute(
        select(Break).where(
            Break.sender_id == record.sender_id,
            Break.id != record.id,
            Break.status.in_(SUPPRESSING_STATUSES),
            Break.start_date <= last,
            Break.end_date >= first,
        )
    )
    still_covering = list(others.scalars())
    ping_ids = [row.id for row in candidates if not is_on_break(still_covering, row.ping_date)]
    if not ping_ids:
        return 0
    result = await db.execute(
        update(Ping)
        .where(Ping.id.in_(ping_ids), Ping.status.in_(reverting_from))
        .values(status=PingStatus.PENDING.value)
    )
    return result.rowcount or 0


async def cancel_break(
    db: AsyncSession,
    break_id: str,
    sender_id: str,
    now: datetime,
    dispatcher: NotificationDispatcher | None = None,
    end_early: bool = False,
) -> Break:
    """Cancel a break; ``end_early`` also moves its end date to today."""
    record = await _get_sender_break(db, break_id, sender_id)
    today = utc_today(now)
    reverted = await _revert_on_break_pings(db, record, today)
    record.status = "canceled"
    if end_early:
        record.end_date = today
    await db.commit()
    logger.info("Break %s canceled (end_early=%s), %d pings reverted", break_id, end_early, reverted)

    receivers = await _active_receiver_ids(db, sender_id)
    await safe_dispatch(dispatcher, "break_ended", sender_id, receivers, {"break_id": break_id})
    return record


async def list_breaks(db: AsyncSession, sender_id: str) -> list[Break]:
    """All breaks of a sender, newest start first."""
    result = await db.execute(
        select(Break).where(Break.sender_id == sender_id).order_by(Break.start_date.desc())
    )
    return list(result.scalars())


async def refresh_break_statuses(db: AsyncSession, today: date) -> dict[str, int]:
    """Daily bookkeeping: scheduled -> active on start, -> completed after end."""
    completed = await db.execute(
        update(Break)
        .where(Break.status.in_(SUPPRESSING_STATUSES), Break.end_date < today)
        .values(status="completed")
    )
    activated = await db.execute(
        update(Break)
        .where(
            and_(
                Break.status == "scheduled",
                Break.start_date <= today,
                Break.end_date >= today,
            )
        )
        .values(status="active")
    )
    await db.commit()
    counts = {"activated": activated.rowcount or 0, "completed": completed.rowcount or 0}
    logger.info("Break statuses refreshed for %s: %s", today, counts)
    return counts


async def end_break_early(
    db: AsyncSession,
    break_id: str,
    sender_id: str,
    now: datetime,
    dispatcher: NotificationDispatcher | None = None,
) -> Break:
    return await cancel_break(db, break_id, sender_id, now, dispatcher=dispatcher, end_early=True)
