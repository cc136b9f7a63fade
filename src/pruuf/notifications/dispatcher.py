"""Default notification dispatcher: in-app rows plus a Redis pub/sub push.

Notifications are:
1. Filtered by the recipient's notification preferences
2. Dropped for receivers whose subscription no longer entitles them
3. Persisted in the database
4. Published on ``ws:user:{id}`` for the push gateway to fan out
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pruuf.clock import Clock, system_clock
from pruuf.db.models import Notification, ReceiverProfile, User
from pruuf.entitlement.service import is_generation_allowed

logger = logging.getLogger(__name__)

# Map notification type -> preference key (missing key means always deliver)
PREFERENCE_MAP = {
    "ping_completed": "ping_completed_notifications",
    "ping_completed_late": "ping_completed_notifications",
    "sender_ok_confirmation": "ping_completed_notifications",
    "break_started": "ping_completed_notifications",
    "break_ended": "ping_completed_notifications",
    "ping_missed": "missed_ping_alerts",
}

# Types that stop once the receiver's subscription lapses
ENTITLED_TYPES = frozenset(PREFERENCE_MAP)

TEMPLATES: dict[str, tuple[str, str]] = {
    "ping_completed": ("Ping Received", "{sender} is okay!"),
    "ping_completed_late": ("Late Check-In", "{sender} checked in late, but is okay."),
    "sender_ok_confirmation": ("Check-In Received", "{sender} is okay!"),
    "ping_missed": ("Missed Ping", "{sender} missed their check-in. Consider reaching out."),
    "ping_reminder": ("Ping Reminder", "Don't forget to check in today!"),
    "break_started": ("Break Scheduled", "{sender} is taking a break from check-ins."),
    "break_ended": ("Break Ended", "{sender} has resumed daily check-ins."),
    "trial_ending": ("Trial Ending", "Your free trial is ending soon."),
}


def should_deliver(preferences: dict[str, Any] | None, type_: str, sender_id: str) -> bool:
    """Check the master toggle, per-sender muting, and the per-type toggle."""
    prefs = preferences or {}
    if type_ == "trial_ending":
        return True
    if prefs.get("notifications_enabled") is False:
        return False
    if sender_id in (prefs.get("muted_sender_ids") or []):
        return False
    pref_key = PREFERENCE_MAP.get(type_)
    if pref_key is None:
        return True
    return prefs.get(pref_key) is not False


def render(type_: str, sender_name: str, payload: dict[str, Any]) -> tuple[str, str]:
    """Title and body for a notification; payload may override either."""
    title, body = TEMPLATES.get(type_, ("Pruuf", "{sender}"))
    if type_ == "ping_completed" and payload.get("method") == "in_person":
        title, body = "In-Person Verification", "{sender} verified in person - all is well!"
    return (
        payload.get("title", title),
        payload.get("body", body.format(sender=sender_name)),
    )


class DatabaseNotificationDispatcher:
    """Persist in-app notifications and publish them for push delivery.

    Uses its own short-lived session per dispatch so a failed write never
    rolls back or expires the caller's unit of work.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Any | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis
        self._clock = clock

    async def _sender_name(self, db: AsyncSession, sender_id: str) -> str:
        result = await db.execute(
            select(User.display_name, User.phone_number).where(User.id == sender_id)
        )
        row = result.one_or_none()
        if row is None:
            return "Someone"
        return row.display_name or row.phone_number or "Someone"

    async def _eligible(
        self, db: AsyncSession, type_: str, sender_id: str, receiver_ids: list[str]
    ) -> list[str]:
        result = await db.execute(
            select(User.id, User.notification_preferences).where(User.id.in_(receiver_ids))
        )
        eligible = [
            row.id for row in result if should_deliver(row.notification_preferences, type_, sender_id)
        ]
        if type_ not in ENTITLED_TYPES or not eligible:
            return eligible

        now = self._clock()
        profiles = await db.execute(
            select(ReceiverProfile).where(ReceiverProfile.user_id.in_(eligible))
        )
        by_user = {p.user_id: p for p in profiles.scalars()}
        return [uid for uid in eligible if is_generation_allowed(by_user.get(uid), now)]

    async def dispatch(
        self,
        type_: str,
        sender_id: str,
        receiver_ids: list[str],
        payload: dict[str, Any],
    ) -> None:
        async with self._session_factory() as db:
            recipients = await self._eligible(db, type_, sender_id, receiver_ids)
            if not recipients:
                logger.debug("No eligible recipients for %s from %s", type_, sender_id)
                return

            sender_name = await self._sender_name(db, sender_id)
            title, body = render(type_, sender_name, payload)
            now = self._clock()
            metadata = {k: v for k, v in payload.items() if k not in ("title", "body")}
            metadata["sender_id"] = sender_id

            notifications = [
                Notification(
                    user_id=user_id,
                    type=type_,
                    title=title,
                    body=body,
                    notification_metadata=metadata,
                    created_at=now,
                )
                for user_id in recipients
            ]
            db.add_all(notifications)
            await db.commit()
        for notification in notifications:
            await self._push(notification)
        logger.info("Dispatched %s from %s to %d recipients", type_, sender_id, len(notifications))

    async def _push(self, notification: Notification) -> None:
        """Publish to ws:user:{user_id}; delivery is best effort."""
        if self._redis is None:
            return
        ws_payload = {
            "event": "notification",
            "data": {
                "id": str(notification.id),
                "type": notification.type,
                "title": notification.title,
                "body": notification.body,
                "timestamp": notification.created_at.isoformat() if notification.created_at else None,
                "read": False,
                "metadata": notification.notification_metadata,
            },
        }
        try:
            await self._redis.publish(f"ws:user:{notification.user_id}", json.dumps(ws_payload))
        except Exception:
            logger.warning("Failed to push notification via ws:user:%s", notification.user_id, exc_info=True)
