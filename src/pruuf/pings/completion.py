"""Ping completion ("I'm OK").

Completes every pending ping of a sender scheduled since the start of the
current UTC day, so one tap answers all receivers at once. Late pings are
still completed; lateness only changes the notification receivers get.

Safe against double taps and retries: the update only touches rows still
``pending``, so a second call finds nothing left to complete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import utc_day_start, utc_today
from pruuf.db.models import AuditLog, Connection, Ping
from pruuf.errors import CompletionValidationError
from pruuf.notifications.base import NotificationDispatcher, safe_dispatch
from pruuf.pings.scheduling import is_late
from pruuf.pings.status import CompletionMethod, ConnectionStatus, PingStatus, sources_for

logger = logging.getLogger(__name__)


@dataclass
class CompletionRequest:
    sender_id: str
    method: str
    ping_id: str | None = None
    location: dict[str, float] | None = None


@dataclass
class CompletionResult:
    completed_count: int
    on_time_count: int
    late_count: int
    method: str
    completed_at: datetime
    receivers_notified: int = 0
    has_location_verification: bool = False
    ping_ids: list[str] = field(default_factory=list)


def validate_completion(request: CompletionRequest) -> None:
    """Reject malformed requests before any storage access."""
    if not request.sender_id:
        raise CompletionValidationError("sender_id is required")
    if request.method not in {m.value for m in CompletionMethod}:
        raise CompletionValidationError("method must be 'tap' or 'in_person'")
    if request.method == CompletionMethod.IN_PERSON.value:
        if not request.location:
            raise CompletionValidationError("location is required for in_person verification")
        if request.location.get("lat") is None or request.location.get("lon") is None:
            raise CompletionValidationError("location must include lat and lon")


def notification_type_for(late_count: int, on_time_count: int) -> str:
    """Late only when every completed ping was late."""
    if late_count > 0 and on_time_count == 0:
        return "ping_completed_late"
    return "ping_completed"


async def _active_receivers(db: AsyncSession, sender_id: str) -> list[str]:
    result = await db.execute(
        select(Connection.receiver_id).where(
            Connection.sender_id == sender_id,
            Connection.status == ConnectionStatus.ACTIVE.value,
        )
    )
    return sorted(set(result.scalars()))


async def complete_ping(
    db: AsyncSession,
    request: CompletionRequest,
    now: datetime,
    dispatcher: NotificationDispatcher | None = None,
) -> CompletionResult:
    """Complete the sender's open pings for today and notify their receivers."""
    validate_completion(request)
    method = request.method
    location: dict[str, Any] | None = None
    if method == CompletionMethod.IN_PERSON.value and request.location:
        location = {
            "lat": request.location["lat"],
            "lon": request.location["lon"],
            "accuracy": request.location.get("accuracy"),
        }

    stmt = select(Ping.id, Ping.receiver_id, Ping.deadline_time).where(
        Ping.sender_id == request.sender_id,
        Ping.status.in_(sources_for(PingStatus.COMPLETED.value)),
        Ping.scheduled_time >= utc_day_start(utc_today(now)),
    )
    if request.ping_id:
        stmt = stmt.where(Ping.id == request.ping_id)
    candidates = (await db.execute(stmt)).all()
    logger.info(
        "Completing pings for sender %s via %s: %d pending", request.sender_id, method, len(candidates)
    )

    if not candidates:
        return await _confirm_without_pending(db, request.sender_id, method, now, dispatcher)

    values: dict[str, Any] = {
        "status": PingStatus.COMPLETED.value,
        "completed_at": now,
        "completion_method": method,
    }
    if location is not None:
        values["verification_location"] = location

    updated = await db.execute(
        update(Ping)
        .where(
            Ping.id.in_([row.id for row in candidates]),
            Ping.status.in_(sources_for(PingStatus.COMPLETED.value)),
        )
        .values(**values)
        .returning(Ping.id)
    )
    completed_ids = set(updated.scalars())
    completed = [row for row in candidates if row.id in completed_ids]

    late = [row for row in completed if is_late(row.deadline_time, now)]
    on_time_count = len(completed) - len(late)
    receivers = sorted({row.receiver_id for row in completed})

    db.add(AuditLog(
        user_id=request.sender_id,
        action="complete_ping",
        resource_type="ping",
        details={
            "method": method,
            "completed_count": len(completed),
            "on_time_count": on_time_count,
            "late_count": len(late),
            "has_location": location is not None,
            "timestamp": now.isoformat(),
        },
        created_at=now,
    ))
    await db.commit()

    result = CompletionResult(
        completed_count=len(completed),
        on_time_count=on_time_count,
        late_count=len(late),
        method=method,
        completed_at=now,
        receivers_notified=len(receivers),
        has_location_verification=location is not None,
        ping_ids=[row.id for row in completed],
    )
    logger.info(
        "Completed %d pings for %s (on_time=%d late=%d)",
        result.completed_count,
        request.sender_id,
        result.on_time_count,
        result.late_count,
    )

    # One notification per receiver, however many of their pings completed.
    if receivers:
        await safe_dispatch(
            dispatcher,
            notification_type_for(result.late_count, result.on_time_count),
            request.sender_id,
            receivers,
            {
                "method": method,
                "is_late": result.late_count > 0 and result.on_time_count == 0,
                "completed_at": now.isoformat(),
                "ping_count": result.completed_count,
                "ping_id": result.ping_ids[0] if result.ping_ids else None,
            },
        )
    return result


async def _confirm_without_pending(
    db: AsyncSession,
    sender_id: str,
    method: str,
    now: datetime,
    dispatcher: NotificationDispatcher | None,
) -> CompletionResult:
    """Nothing left to complete: still relay "I'm OK" to active receivers."""
    receivers = await _active_receivers(db, sender_id)
    if receivers:
        db.add(AuditLog(
            user_id=sender_id,
            action="confirmatory_ping",
            resource_type="ping",
            details={
                "method": method,
                "completed_count": 0,
                "receivers_notified": len(receivers),
                "timestamp": now.isoformat(),
            },
            created_at=now,
        ))
        await db.commit()
        await safe_dispatch(
            dispatcher,
            "sender_ok_confirmation",
            sender_id,
            receivers,
            {"method": method, "completed_at": now.isoformat(), "is_confirmatory": True, "ping_count": 0},
        )
    return CompletionResult(
        completed_count=0,
        on_time_count=0,
        late_count=0,
        method=method,
        completed_at=now,
        receivers_notified=len(receivers),
    )
