"""Retention cleanup for notifications and audit logs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.db.models import AuditLog, Notification

logger = logging.getLogger(__name__)


async def cleanup_expired_data(
    db: AsyncSession,
    now: datetime,
    notification_retention_days: int = 90,
    audit_log_retention_days: int = 365,
) -> dict[str, int]:
    """Delete notifications and audit entries older than their retention."""
    notifications = await db.execute(
        delete(Notification).where(
            Notification.created_at < now - timedelta(days=notification_retention_days)
        )
    )
    audit_logs = await db.execute(
        delete(AuditLog).where(AuditLog.created_at < now - timedelta(days=audit_log_retention_days))
    )
    await db.commit()
    result = {
        "old_notifications_deleted": notifications.rowcount or 0,
        "old_audit_logs_deleted": audit_logs.rowcount or 0,
    }
    logger.info("Cleanup complete: %s", result)
    return result
