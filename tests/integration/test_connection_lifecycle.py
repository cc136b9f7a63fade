"""Integration tests: pausing, resuming, and deleting connections."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from pruuf.connections.service import delete_connection, pause_connection, resume_connection
from pruuf.db.models import Connection, Ping
from pruuf.errors import InvalidTransitionError, NotFoundError
from pruuf.pings.generator import generate_daily_pings
from support import NOW, TODAY


class TestPauseResume:
    @pytest.mark.asyncio
    async def test_pause_stops_generation(self, db, seed):
        sender, _, connection = await seed.pair()

        await pause_connection(db, connection.id, NOW, user_id=sender.id)
        result = await generate_daily_pings(db, NOW)

        assert result.pings_created == 0

    @pytest.mark.asyncio
    async def test_resume_restores_generation(self, db, seed):
        _, _, connection = await seed.pair()
        await pause_connection(db, connection.id, NOW)

        resumed = await resume_connection(db, connection.id, NOW)
        result = await generate_daily_pings(db, NOW)

        assert resumed.status == "active"
        assert result.pings_created == 1

    @pytest.mark.asyncio
    async def test_resume_active_connection_rejected(self, db, seed):
        _, _, connection = await seed.pair()
        with pytest.raises(InvalidTransitionError):
            await resume_connection(db, connection.id, NOW)

    @pytest.mark.asyncio
    async def test_unknown_connection(self, db):
        with pytest.raises(NotFoundError):
            await pause_connection(db, "missing", NOW)


class TestDeleteConnection:
    @pytest.mark.asyncio
    async def test_future_pings_removed_history_kept(self, db, seed):
        _, receiver, connection = await seed.pair()
        past = await seed.ping(connection, day=TODAY - timedelta(days=1), status="completed")
        today = await seed.ping(connection)
        await seed.ping(connection, day=TODAY + timedelta(days=1))

        removed = await delete_connection(db, connection.id, receiver.id, NOW)

        assert removed == 1
        remaining = set((await db.execute(select(Ping.id))).scalars())
        assert remaining == {past.id, today.id}
        row = (await db.execute(select(Connection.status, Connection.deleted_at))).one()
        assert row.status == "deleted"
        assert row.deleted_at == NOW

    @pytest.mark.asyncio
    async def test_non_party_cannot_delete(self, db, seed):
        _, _, connection = await seed.pair()
        stranger = await seed.bare_user()

        with pytest.raises(NotFoundError):
            await delete_connection(db, connection.id, stranger.id, NOW)

    @pytest.mark.asyncio
    async def test_deleted_connection_gets_no_pings(self, db, seed):
        sender, _, connection = await seed.pair()
        await delete_connection(db, connection.id, sender.id, NOW)

        result = await generate_daily_pings(db, NOW)

        assert result.total_connections == 0
