"""Test helpers: fixed instants, a recording dispatcher, and a data seeder."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.db.models import Break, Connection, Ping, ReceiverProfile, SenderProfile, User


# Wednesday, mid-day UTC.
NOW = datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


@dataclass
class DispatchCall:
    type_: str
    sender_id: str
    receiver_ids: list[str]
    payload: dict[str, Any] = field(default_factory=dict)


class RecordingDispatcher:
    """In-memory dispatcher that remembers every message it was handed."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[DispatchCall] = []
        self.fail = fail

    async def dispatch(
        self, type_: str, sender_id: str, receiver_ids: list[str], payload: dict[str, Any]
    ) -> None:
        if self.fail:
            raise RuntimeError("push gateway unavailable")
        self.calls.append(DispatchCall(type_, sender_id, list(receiver_ids), dict(payload)))

    def of_type(self, type_: str) -> list[DispatchCall]:
        return [c for c in self.calls if c.type_ == type_]


def _id() -> str:
    return str(uuid.uuid4())


class Seeder:
    """Builds users, profiles, connections, breaks, and pings."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _save(self, *objs: Any) -> None:
        self.db.add_all(objs)
        await self.db.commit()

    async def sender(
        self,
        tz: str = "UTC",
        ping_time: time = time(9, 0),
        ping_enabled: bool = True,
        display_name: str | None = "Mom",
    ) -> User:
        user = User(id=_id(), display_name=display_name, timezone=tz, created_at=NOW)
        profile = SenderProfile(user_id=user.id, ping_time=ping_time, ping_enabled=ping_enabled)
        await self._save(user, profile)
        return user

    async def receiver(
        self,
        status: str = "trial",
        trial_end: datetime | None = NOW + timedelta(days=14),
        subscription_end: datetime | None = None,
        updated_at: datetime | None = None,
        preferences: dict[str, Any] | None = None,
    ) -> User:
        user = User(id=_id(), display_name="Kid", notification_preferences=preferences, created_at=NOW)
        profile = ReceiverProfile(
            user_id=user.id,
            subscription_status=status,
            trial_start_date=NOW - timedelta(days=1),
            trial_end_date=trial_end,
            subscription_end_date=subscription_end,
            updated_at=updated_at,
        )
        await self._save(user, profile)
        return user

    async def bare_user(self) -> User:
        user = User(id=_id(), created_at=NOW)
        await self._save(user)
        return user

    async def connection(self, sender: User, receiver: User, status: str = "active") -> Connection:
        connection = Connection(
            id=_id(), sender_id=sender.id, receiver_id=receiver.id, status=status, created_at=NOW
        )
        await self._save(connection)
        return connection

    async def pair(self, **sender_kwargs: Any) -> tuple[User, User, Connection]:
        sender = await self.sender(**sender_kwargs)
        receiver = await self.receiver()
        return sender, receiver, await self.connection(sender, receiver)

    async def ping(
        self,
        connection: Connection,
        day: date = TODAY,
        status: str = "pending",
        scheduled: datetime | None = None,
        deadline_minutes: int = 90,
        completed_at: datetime | None = None,
    ) -> Ping:
        scheduled = scheduled or datetime.combine(day, time(9, 0), tzinfo=timezone.utc)
        ping = Ping(
            id=_id(),
            connection_id=connection.id,
            sender_id=connection.sender_id,
            receiver_id=connection.receiver_id,
            ping_date=day,
            scheduled_time=scheduled,
            deadline_time=scheduled + timedelta(minutes=deadline_minutes),
            status=status,
            completed_at=completed_at,
            created_at=scheduled - timedelta(hours=9),
        )
        await self._save(ping)
        return ping

    async def break_(self, sender: User, start: date, end: date, status: str = "scheduled") -> Break:
        record = Break(
            id=_id(), sender_id=sender.id, start_date=start, end_date=end, status=status, created_at=NOW
        )
        await self._save(record)
        return record


