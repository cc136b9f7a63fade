"""arq cron jobs driving the daily ping lifecycle.

Each job opens its own session and reads the wall clock once, so a run
sees a single consistent ``now``.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis

from pruuf.breaks.service import refresh_break_statuses
from pruuf.clock import system_clock, utc_today
from pruuf.config import get_settings
from pruuf.database import close_db, get_session_factory, init_db
from pruuf.entitlement.service import send_trial_ending_reminders
from pruuf.maintenance.service import cleanup_expired_data
from pruuf.notifications.dispatcher import DatabaseNotificationDispatcher
from pruuf.pings.generator import generate_daily_pings
from pruuf.pings.missed import detect_missed_pings, send_ping_reminders

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB and the Redis push client on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["push_redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    logger.info("Ping lifecycle worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    redis_client: aioredis.Redis | None = ctx.get("push_redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Ping lifecycle worker shut down")


def _dispatcher(ctx: dict) -> DatabaseNotificationDispatcher:  # type: ignore[type-arg]
    return DatabaseNotificationDispatcher(get_session_factory(), redis=ctx.get("push_redis"))


async def generate_pings_job(ctx: dict) -> dict[str, object]:  # type: ignore[type-arg]
    """00:00 UTC: create today's pings."""
    settings = get_settings()
    async with get_session_factory()() as db:
        result = await generate_daily_pings(
            db,
            system_clock(),
            deadline_minutes=settings.ping_deadline_minutes,
            grace_days=settings.past_due_grace_days,
        )
    return result.as_dict()


async def check_missed_job(ctx: dict) -> int:  # type: ignore[type-arg]
    """Every few minutes: mark overdue pings missed."""
    async with get_session_factory()() as db:
        return await detect_missed_pings(db, system_clock(), dispatcher=_dispatcher(ctx))


async def ping_reminders_job(ctx: dict) -> int:  # type: ignore[type-arg]
    async with get_session_factory()() as db:
        return await send_ping_reminders(db, system_clock(), dispatcher=_dispatcher(ctx))


async def refresh_breaks_job(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """00:05 UTC: move break statuses along (display only)."""
    async with get_session_factory()() as db:
        return await refresh_break_statuses(db, utc_today(system_clock()))


async def trial_ending_job(ctx: dict) -> int:  # type: ignore[type-arg]
    settings = get_settings()
    async with get_session_factory()() as db:
        return await send_trial_ending_reminders(
            db,
            system_clock(),
            _dispatcher(ctx),
            reminder_days=settings.trial_reminder_days,
        )


async def cleanup_job(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """03:00 UTC: retention cleanup."""
    settings = get_settings()
    async with get_session_factory()() as db:
        return await cleanup_expired_data(
            db,
            system_clock(),
            notification_retention_days=settings.notification_retention_days,
            audit_log_retention_days=settings.audit_log_retention_days,
        )
