"""Missed-ping sweep and in-window reminders (arq cron).

A pending ping whose deadline has passed becomes ``missed``. The status
change is a guarded ``UPDATE ... WHERE status = 'pending' RETURNING``, so
overlapping sweeps never notify for the same ping twice.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import utc_day_bounds, utc_today
from pruuf.db.models import Notification, Ping
from pruuf.notifications.base import NotificationDispatcher, safe_dispatch
from pruuf.pings.status import PingStatus, sources_for

logger = logging.getLogger(__name__)


async def _last_completed_at(db: AsyncSession, sender_id: str) -> datetime | None:
    result = await db.execute(
        select(func.max(Ping.completed_at)).where(
            Ping.sender_id == sender_id,
            Ping.status == PingStatus.COMPLETED.value,
        )
    )
    return result.scalar_one_or_none()


async def detect_missed_pings(
    db: AsyncSession,
    now: datetime,
    dispatcher: NotificationDispatcher | None = None,
) -> int:
    """Mark overdue pending pings missed and alert their receivers.

    Returns the number of pings marked missed.
    """
    updated = await db.execute(
        update(Ping)
        .where(
            Ping.status.in_(sources_for(PingStatus.MISSED.value)),
            Ping.deadline_time < now,
        )
        .values(status=PingStatus.MISSED.value)
        .returning(Ping.id, Ping.sender_id, Ping.receiver_id)
    )
    missed = updated.all()
    await db.commit()

    if not missed:
        return 0

    by_sender: dict[str, dict[str, list[str]]] = defaultdict(lambda: defaultdict(list))
    for row in missed:
        by_sender[row.sender_id][row.receiver_id].append(row.id)

    for sender_id, receivers in by_sender.items():
        last_seen = await _last_completed_at(db, sender_id)
        ping_ids = [pid for ids in receivers.values() for pid in ids]
        await safe_dispatch(
            dispatcher,
            "ping_missed",
            sender_id,
            sorted(receivers),
            {
                "ping_ids": ping_ids,
                "last_seen": last_seen.isoformat() if last_seen else None,
            },
        )

    logger.info("Marked %d pings missed across %d senders", len(missed), len(by_sender))
    return len(missed)


async def send_ping_reminders(
    db: AsyncSession,
    now: datetime,
    dispatcher: NotificationDispatcher | None = None,
) -> int:
    """Remind senders whose check-in window is open and still unanswered.

    At most one reminder per sender per UTC day. Returns reminders sent.
    """
    result = await db.execute(
        select(Ping.sender_id)
        .where(
            Ping.status == PingStatus.PENDING.value,
            Ping.scheduled_time <= now,
            Ping.deadline_time >= now,
        )
        .distinct()
    )
    sender_ids = list(result.scalars())
    if not sender_ids:
        return 0

    day_start, _ = utc_day_bounds(utc_today(now))
    already = await db.execute(
        select(Notification.user_id).where(
            Notification.user_id.in_(sender_ids),
            Notification.type == "ping_reminder",
            Notification.created_at >= day_start,
        )
    )
    reminded = set(already.scalars())

    sent = 0
    for sender_id in sender_ids:
        if sender_id in reminded:
            continue
        if await safe_dispatch(dispatcher, "ping_reminder", sender_id, [sender_id], {}):
            sent += 1
    logger.info("Sent %d ping reminders", sent)
    return sent
