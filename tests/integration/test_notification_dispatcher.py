"""Integration tests: the database-backed notification dispatcher."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest
from sqlalchemy import select

from pruuf.clock import fixed_clock
from pruuf.db.models import Notification
from pruuf.notifications.dispatcher import DatabaseNotificationDispatcher
from support import NOW


class FakeRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, json.loads(message)))


async def notifications(db):
    result = await db.execute(select(Notification.user_id, Notification.type, Notification.title, Notification.body))
    return result.all()


class TestDatabaseNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_persists_and_pushes(self, db, seed, session_factory):
        sender, receiver, _ = await seed.pair()
        redis = FakeRedis()
        dispatcher = DatabaseNotificationDispatcher(session_factory, redis=redis, clock=fixed_clock(NOW))

        await dispatcher.dispatch("ping_completed", sender.id, [receiver.id], {"method": "tap"})

        [row] = await notifications(db)
        assert row.user_id == receiver.id
        assert row.title == "Ping Received"
        assert row.body == "Mom is okay!"
        [(channel, message)] = redis.published
        assert channel == f"ws:user:{receiver.id}"
        assert message["event"] == "notification"
        assert message["data"]["metadata"]["sender_id"] == sender.id

    @pytest.mark.asyncio
    async def test_muted_sender_dropped(self, db, seed, session_factory):
        sender = await seed.sender()
        receiver = await seed.receiver(preferences={"muted_sender_ids": [sender.id]})
        dispatcher = DatabaseNotificationDispatcher(session_factory, clock=fixed_clock(NOW))

        await dispatcher.dispatch("ping_missed", sender.id, [receiver.id], {})

        assert await notifications(db) == []

    @pytest.mark.asyncio
    async def test_lapsed_receiver_gets_no_ping_news(self, db, seed, session_factory):
        sender = await seed.sender()
        lapsed = await seed.receiver(trial_end=NOW - timedelta(days=1))
        paying = await seed.receiver(status="active")
        dispatcher = DatabaseNotificationDispatcher(session_factory, clock=fixed_clock(NOW))

        await dispatcher.dispatch("ping_completed", sender.id, [lapsed.id, paying.id], {})

        assert [r.user_id for r in await notifications(db)] == [paying.id]

    @pytest.mark.asyncio
    async def test_trial_ending_always_delivered(self, db, seed, session_factory):
        receiver = await seed.receiver(
            trial_end=NOW, preferences={"notifications_enabled": False}
        )
        dispatcher = DatabaseNotificationDispatcher(session_factory, clock=fixed_clock(NOW))

        await dispatcher.dispatch(
            "trial_ending", receiver.id, [receiver.id], {"title": "Trial Ended", "body": "Subscribe"}
        )

        [row] = await notifications(db)
        assert (row.type, row.title, row.body) == ("trial_ending", "Trial Ended", "Subscribe")

    @pytest.mark.asyncio
    async def test_push_failure_is_not_fatal(self, db, seed, session_factory):
        class BrokenRedis:
            async def publish(self, channel, message):
                raise ConnectionError("redis down")

        sender, receiver, _ = await seed.pair()
        dispatcher = DatabaseNotificationDispatcher(session_factory, redis=BrokenRedis(), clock=fixed_clock(NOW))

        await dispatcher.dispatch("ping_completed_late", sender.id, [receiver.id], {})

        assert len(await notifications(db)) == 1
