"""Daily ping generation.

Runs once per UTC day (arq cron at 00:00). For every active connection it
emits at most one ping for the target date, ``pending`` or ``on_break``,
scheduled at the sender's local check-in time in the sender's current zone.

Idempotent: an existing ping for (connection, date) is skipped up front and
the ``uq_pings_connection_date`` constraint rejects any concurrent duplicate,
so re-running after a partial failure is safe.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.breaks.service import get_breaks_covering, is_on_break
from pruuf.clock import utc_today
from pruuf.db.models import AuditLog, Connection, Ping, ReceiverProfile, SenderProfile, User
from pruuf.entitlement.service import PAST_DUE_GRACE_DAYS, is_generation_allowed
from pruuf.errors import GenerationError
from pruuf.pings.scheduling import DEFAULT_DEADLINE_MINUTES, deadline_for, scheduled_instant
from pruuf.pings.status import ConnectionStatus, PingStatus, initial_status

logger = logging.getLogger(__name__)

SKIP_PING_EXISTS = "ping_already_exists"
SKIP_NO_SENDER_PROFILE = "no_sender_profile"
SKIP_PING_DISABLED = "ping_disabled"
SKIP_NO_RECEIVER_PROFILE = "no_receiver_profile"
SKIP_SUBSCRIPTION_INACTIVE = "receiver_subscription_inactive"


@dataclass
class GenerationResult:
    date: date
    total_connections: int = 0
    pings_created: int = 0
    pending_pings: int = 0
    on_break_pings: int = 0
    skipped_details: dict[str, int] = field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return sum(self.skipped_details.values())

    def as_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "total_connections": self.total_connections,
            "pings_created": self.pings_created,
            "pending_pings": self.pending_pings,
            "on_break_pings": self.on_break_pings,
            "skipped": self.skipped,
            "skipped_details": dict(self.skipped_details),
        }


def _insert_ignoring_duplicates(db: AsyncSession):
    """INSERT ... ON CONFLICT DO NOTHING for the session's dialect."""
    dialect = db.get_bind().dialect.name
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    return insert(Ping).on_conflict_do_nothing(index_elements=["connection_id", "ping_date"])


async def _existing_ping_connections(
    db: AsyncSession, connection_ids: list[str], target: date
) -> set[str]:
    result = await db.execute(
        select(Ping.connection_id).where(
            Ping.connection_id.in_(connection_ids),
            Ping.ping_date == target,
        )
    )
    return set(result.scalars())


async def generate_daily_pings(
    db: AsyncSession,
    now: datetime,
    target_date: date | None = None,
    deadline_minutes: int = DEFAULT_DEADLINE_MINUTES,
    grace_days: int = PAST_DUE_GRACE_DAYS,
) -> GenerationResult:
    """Create the day's pings for all active connections.

    Raises GenerationError if the batch insert fails; nothing from the run
    is committed in that case.
    """
    target = target_date or utc_today(now)
    result = GenerationResult(date=target)
    logger.info("Starting daily ping generation for %s", target)

    connections = list(
        (await db.execute(select(Connection).where(Connection.status == ConnectionStatus.ACTIVE.value))).scalars()
    )
    result.total_connections = len(connections)
    if not connections:
        logger.info("No active connections to process for %s", target)
        return result

    sender_ids = {c.sender_id for c in connections}
    receiver_ids = {c.receiver_id for c in connections}

    senders = {
        p.user_id: p
        for p in (await db.execute(select(SenderProfile).where(SenderProfile.user_id.in_(sender_ids)))).scalars()
    }
    zones = dict((await db.execute(select(User.id, User.timezone).where(User.id.in_(sender_ids)))).tuples().all())
    receivers = {
        p.user_id: p
        for p in (
            await db.execute(select(ReceiverProfile).where(ReceiverProfile.user_id.in_(receiver_ids)))
        ).scalars()
    }
    breaks_by_sender = await get_breaks_covering(db, sender_ids, target)
    existing = await _existing_ping_connections(db, [c.id for c in connections], target)

    skipped: Counter[str] = Counter()
    rows: list[dict[str, object]] = []
    for connection in connections:
        if connection.id in existing:
            skipped[SKIP_PING_EXISTS] += 1
            continue

        sender = senders.get(connection.sender_id)
        if sender is None:
            skipped[SKIP_NO_SENDER_PROFILE] += 1
            continue
        if not sender.ping_enabled:
            skipped[SKIP_PING_DISABLED] += 1
            continue

        receiver = receivers.get(connection.receiver_id)
        if receiver is None:
            skipped[SKIP_NO_RECEIVER_PROFILE] += 1
            continue
        if not is_generation_allowed(receiver, now, grace_days=grace_days):
            skipped[SKIP_SUBSCRIPTION_INACTIVE] += 1
            continue

        on_break = is_on_break(breaks_by_sender.get(connection.sender_id, []), target)
        scheduled = scheduled_instant(sender.ping_time, target, zones.get(connection.sender_id))
        rows.append({
            "id": str(uuid.uuid4()),
            "connection_id": connection.id,
            "sender_id": connection.sender_id,
            "receiver_id": connection.receiver_id,
            "ping_date": target,
            "scheduled_time": scheduled,
            "deadline_time": deadline_for(scheduled, deadline_minutes),
            "status": initial_status(on_break),
            "created_at": now,
        })

    if rows:
        try:
            inserted = await db.execute(_insert_ignoring_duplicates(db).values(rows).returning(Ping.status))
            statuses = list(inserted.scalars())
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Failed to insert pings for %s", target, exc_info=True)
            raise GenerationError(f"Failed to insert pings: {exc}") from exc

        result.pings_created = len(statuses)
        result.pending_pings = statuses.count(PingStatus.PENDING.value)
        result.on_break_pings = statuses.count(PingStatus.ON_BREAK.value)
        # Rows dropped by the unique constraint lost a race with another run.
        raced = len(rows) - len(statuses)
        if raced:
            skipped[SKIP_PING_EXISTS] += raced

    result.skipped_details = dict(skipped)
    db.add(AuditLog(
        action="generate_daily_pings",
        resource_type="pings",
        details=result.as_dict(),
        created_at=now,
    ))
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Failed to commit ping generation for %s", target, exc_info=True)
        raise GenerationError(f"Failed to commit pings: {exc}") from exc

    logger.info(
        "Ping generation complete for %s: created=%d pending=%d on_break=%d skipped=%s",
        target,
        result.pings_created,
        result.pending_pings,
        result.on_break_pings,
        result.skipped_details,
    )
    return result
