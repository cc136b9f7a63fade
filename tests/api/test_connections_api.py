"""API tests: /api/v1/connections/*."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from support import TODAY


class TestConnectionsAPI:
    @pytest.mark.asyncio
    async def test_pause_and_resume(self, client: AsyncClient, api_seed):
        sender, _, connection = await api_seed.pair()

        paused = await client.post(f"/api/v1/connections/{connection.id}/pause", json={"user_id": sender.id})
        resumed = await client.post(f"/api/v1/connections/{connection.id}/resume")

        assert paused.json()["status"] == "paused"
        assert resumed.json()["status"] == "active"

    @pytest.mark.asyncio
    async def test_double_pause_is_409(self, client: AsyncClient, api_seed):
        _, _, connection = await api_seed.pair()
        await client.post(f"/api/v1/connections/{connection.id}/pause")

        response = await client.post(f"/api/v1/connections/{connection.id}/pause")

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, api_seed):
        _, receiver, connection = await api_seed.pair()
        await api_seed.ping(connection, day=TODAY + timedelta(days=1))

        response = await client.delete(f"/api/v1/connections/{connection.id}", params={"user_id": receiver.id})

        assert response.status_code == 200
        assert response.json() == {"success": True, "connection_id": connection.id, "future_pings_removed": 1}

    @pytest.mark.asyncio
    async def test_delete_by_stranger_is_404(self, client: AsyncClient, api_seed):
        _, _, connection = await api_seed.pair()

        response = await client.delete(f"/api/v1/connections/{connection.id}", params={"user_id": "stranger"})

        assert response.status_code == 404
