"""Integration tests: missed-ping sweep and check-in reminders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from pruuf.db.models import Notification, Ping
from pruuf.pings.missed import detect_missed_pings, send_ping_reminders
from support import NOW, TODAY


async def status_of(db, ping_id):
    return (await db.execute(select(Ping.status).where(Ping.id == ping_id))).scalar_one()


class TestDetectMissedPings:
    @pytest.mark.asyncio
    async def test_overdue_ping_missed_once(self, db, seed, dispatcher):
        sender, receiver, connection = await seed.pair()
        ping = await seed.ping(connection)

        assert await detect_missed_pings(db, NOW, dispatcher) == 1
        assert await detect_missed_pings(db, NOW + timedelta(minutes=5), dispatcher) == 0

        assert await status_of(db, ping.id) == "missed"
        [call] = dispatcher.calls
        assert call.type_ == "ping_missed"
        assert call.sender_id == sender.id
        assert call.receiver_ids == [receiver.id]
        assert call.payload["ping_ids"] == [ping.id]
        assert call.payload["last_seen"] is None

    @pytest.mark.asyncio
    async def test_deadline_instant_is_not_missed(self, db, seed, dispatcher):
        _, _, connection = await seed.pair()
        ping = await seed.ping(connection, scheduled=NOW - timedelta(minutes=90))

        assert await detect_missed_pings(db, NOW, dispatcher) == 0
        assert await status_of(db, ping.id) == "pending"

    @pytest.mark.asyncio
    async def test_terminal_pings_untouched(self, db, seed, dispatcher):
        _, _, connection = await seed.pair()
        on_break = await seed.ping(connection, status="on_break")
        done = await seed.ping(connection, day=TODAY - timedelta(days=1), status="completed")

        assert await detect_missed_pings(db, NOW, dispatcher) == 0
        assert await status_of(db, on_break.id) == "on_break"
        assert await status_of(db, done.id) == "completed"
        assert dispatcher.calls == []

    @pytest.mark.asyncio
    async def test_batched_per_sender_with_last_seen(self, db, seed, dispatcher):
        sender = await seed.sender()
        r1, r2 = await seed.receiver(), await seed.receiver()
        c1 = await seed.connection(sender, r1)
        c2 = await seed.connection(sender, r2)
        last_seen = datetime(2024, 6, 4, 9, 15, tzinfo=timezone.utc)
        await seed.ping(c1, day=TODAY - timedelta(days=1), status="completed", completed_at=last_seen)
        await seed.ping(c1)
        await seed.ping(c2)

        assert await detect_missed_pings(db, NOW, dispatcher) == 2

        [call] = dispatcher.calls
        assert call.receiver_ids == sorted([r1.id, r2.id])
        assert len(call.payload["ping_ids"]) == 2
        assert call.payload["last_seen"] == last_seen.isoformat()


class TestPingReminders:
    @pytest.mark.asyncio
    async def test_open_window_gets_reminder(self, db, seed, dispatcher):
        sender, _, connection = await seed.pair()
        await seed.ping(connection, scheduled=NOW - timedelta(minutes=30))

        assert await send_ping_reminders(db, NOW, dispatcher) == 1
        [call] = dispatcher.calls
        assert call.type_ == "ping_reminder"
        assert call.receiver_ids == [sender.id]

    @pytest.mark.asyncio
    async def test_closed_window_gets_none(self, db, seed, dispatcher):
        _, _, connection = await seed.pair()
        await seed.ping(connection)

        assert await send_ping_reminders(db, NOW, dispatcher) == 0

    @pytest.mark.asyncio
    async def test_one_reminder_per_day(self, db, seed, dispatcher):
        sender, _, connection = await seed.pair()
        await seed.ping(connection, scheduled=NOW - timedelta(minutes=30))
        db.add(Notification(user_id=sender.id, type="ping_reminder", title="Ping Reminder", created_at=NOW))
        await db.commit()

        assert await send_ping_reminders(db, NOW, dispatcher) == 0
