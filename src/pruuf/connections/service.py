"""Connection lifecycle: pause, resume, and soft delete.

Only ``active`` connections get daily pings. Pausing therefore takes
precedence over any break bookkeeping: a paused connection simply gets no
ping. Deleting marks the row ``deleted`` and removes pings for dates after
today; today's and past pings stay as history.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import utc_today
from pruuf.db.models import Connection, Ping
from pruuf.errors import InvalidTransitionError, NotFoundError
from pruuf.pings.status import ConnectionStatus

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[str, list[str]] = {
    ConnectionStatus.PENDING.value: [ConnectionStatus.ACTIVE.value, ConnectionStatus.DELETED.value],
    ConnectionStatus.ACTIVE.value: [ConnectionStatus.PAUSED.value, ConnectionStatus.DELETED.value],
    ConnectionStatus.PAUSED.value: [ConnectionStatus.ACTIVE.value, ConnectionStatus.DELETED.value],
    ConnectionStatus.DELETED.value: [],
}


async def get_connection(db: AsyncSession, connection_id: str, user_id: str | None = None) -> Connection:
    """Load a connection; with ``user_id``, only if that user is a party to it."""
    result = await db.execute(select(Connection).where(Connection.id == connection_id))
    connection = result.scalar_one_or_none()
    if connection is None:
        raise NotFoundError("Connection not found")
    if user_id is not None and user_id not in (connection.sender_id, connection.receiver_id):
        raise NotFoundError("Connection not found")
    return connection


async def _transition(
    db: AsyncSession, connection_id: str, target: str, now: datetime, user_id: str | None
) -> Connection:
    connection = await get_connection(db, connection_id, user_id)
    if target not in VALID_TRANSITIONS.get(connection.status, []):
        raise InvalidTransitionError(f"Invalid transition: {connection.status} -> {target}")
    connection.status = target
    connection.updated_at = now
    return connection


async def pause_connection(
    db: AsyncSession, connection_id: str, now: datetime, user_id: str | None = None
) -> Connection:
    connection = await _transition(db, connection_id, ConnectionStatus.PAUSED.value, now, user_id)
    await db.commit()
    logger.info("Connection %s paused", connection_id)
    return connection


async def resume_connection(
    db: AsyncSession, connection_id: str, now: datetime, user_id: str | None = None
) -> Connection:
    connection = await _transition(db, connection_id, ConnectionStatus.ACTIVE.value, now, user_id)
    await db.commit()
    logger.info("Connection %s resumed", connection_id)
    return connection


async def delete_connection(
    db: AsyncSession, connection_id: str, user_id: str, now: datetime
) -> int:
    """Soft-delete a connection on behalf of either party.

    Returns the number of future pings removed.
    """
    connection = await _transition(db, connection_id, ConnectionStatus.DELETED.value, now, user_id)
    connection.deleted_at = now
    removed = await db.execute(
        delete(Ping).where(
            Ping.connection_id == connection_id,
            Ping.ping_date > utc_today(now),
        )
    )
    await db.commit()
    count = removed.rowcount or 0
    logger.info("Connection %s deleted by %s, %d future pings removed", connection_id, user_id, count)
    return count
