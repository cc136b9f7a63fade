"""Integration tests: notification and audit retention."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from pruuf.db.models import AuditLog, Notification
from pruuf.maintenance.service import cleanup_expired_data
from support import NOW


class TestCleanupExpiredData:
    @pytest.mark.asyncio
    async def test_old_rows_removed(self, db, seed):
        user = await seed.bare_user()
        db.add_all([
            Notification(user_id=user.id, type="ping_completed", title="old", created_at=NOW - timedelta(days=91)),
            Notification(user_id=user.id, type="ping_completed", title="new", created_at=NOW - timedelta(days=89)),
            AuditLog(action="complete_ping", resource_type="ping", created_at=NOW - timedelta(days=366)),
            AuditLog(action="complete_ping", resource_type="ping", created_at=NOW - timedelta(days=10)),
        ])
        await db.commit()

        result = await cleanup_expired_data(db, NOW)

        assert result == {"old_notifications_deleted": 1, "old_audit_logs_deleted": 1}
        assert list((await db.execute(select(Notification.title))).scalars()) == ["new"]
        assert len((await db.execute(select(AuditLog.id))).scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_custom_retention(self, db, seed):
        user = await seed.bare_user()
        db.add(Notification(user_id=user.id, type="ping_missed", title="t", created_at=NOW - timedelta(days=8)))
        await db.commit()

        result = await cleanup_expired_data(db, NOW, notification_retention_days=7)

        assert result["old_notifications_deleted"] == 1
