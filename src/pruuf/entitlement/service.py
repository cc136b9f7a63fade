"""Receiver entitlement gate.

Subscription status is owned by the payment webhook handlers. The engine
only reads it, except that evaluating an elapsed trial, subscription, or
past_due grace window writes ``expired`` back so later reads are cheap.

Rules, in order:

- active:   allowed while ``subscription_end_date`` is unset or in the future
- trial:    allowed while ``trial_end_date`` is unset or in the future
- past_due: allowed for ``past_due_grace_days`` after ``updated_at``
- canceled / expired / anything else: not allowed
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pruuf.clock import utc_day_bounds, utc_today
from pruuf.db.models import Notification, ReceiverProfile
from pruuf.notifications.base import NotificationDispatcher, safe_dispatch

logger = logging.getLogger(__name__)

PAST_DUE_GRACE_DAYS = 3
VALID_STATUSES = frozenset({"trial", "active", "past_due"})


@dataclass
class EntitlementCheck:
    status: str | None
    valid: bool
    trial_days_remaining: int | None = None
    subscription_end_date: datetime | None = None
    message: str | None = None


def is_generation_allowed(
    profile: ReceiverProfile | None,
    now: datetime,
    requires_entitlement: bool = True,
    grace_days: int = PAST_DUE_GRACE_DAYS,
) -> bool:
    """May pings still be generated for this receiver at ``now``?"""
    if profile is None:
        return not requires_entitlement

    status = profile.subscription_status
    if status == "active":
        end = profile.subscription_end_date
        return end is None or end > now
    if status == "trial":
        end = profile.trial_end_date
        return end is None or end > now
    if status == "past_due":
        if profile.updated_at is None:
            return False
        return now <= profile.updated_at + timedelta(days=grace_days)
    return False


def effective_status(
    profile: ReceiverProfile, now: datetime, grace_days: int = PAST_DUE_GRACE_DAYS
) -> str:
    """Stored status, or ``expired`` when its time window has run out."""
    status = profile.subscription_status
    if status in VALID_STATUSES and not is_generation_allowed(profile, now, grace_days=grace_days):
        return "expired"
    return status


def trial_days_remaining(profile: ReceiverProfile, now: datetime) -> int | None:
    """Whole days left in the trial, rounded up, never negative."""
    if profile.subscription_status != "trial" or profile.trial_end_date is None:
        return None
    remaining = (profile.trial_end_date - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


async def get_receiver_profile(db: AsyncSession, user_id: str) -> ReceiverProfile | None:
    result = await db.execute(select(ReceiverProfile).where(ReceiverProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def check_entitlement(
    db: AsyncSession,
    user_id: str,
    now: datetime,
    grace_days: int = PAST_DUE_GRACE_DAYS,
) -> EntitlementCheck:
    """Evaluate (and self-heal) a user's receiver entitlement."""
    profile = await get_receiver_profile(db, user_id)
    if profile is None:
        # Sender-only users carry no subscription.
        return EntitlementCheck(
            status=None,
            valid=True,
            message="No receiver profile - user may be sender-only",
        )

    status = effective_status(profile, now, grace_days=grace_days)
    valid = status in VALID_STATUSES
    check = EntitlementCheck(
        status=status,
        valid=valid,
        trial_days_remaining=trial_days_remaining(profile, now) if valid else None,
        subscription_end_date=profile.subscription_end_date,
        message=None if valid else "Subscription expired. Please subscribe to continue receiving pings.",
    )

    if status != profile.subscription_status:
        logger.info(
            "Entitlement for %s expired (%s -> %s)", user_id, profile.subscription_status, status
        )
        profile.subscription_status = status
        profile.updated_at = now
        try:
            await db.commit()
        except SQLAlchemyError:
            logger.error("Failed to persist expired status for %s", user_id, exc_info=True)
            await db.rollback()

    return check


def _trial_message(days_remaining: int) -> tuple[str, str]:
    if days_remaining == 0:
        return "Trial Ended", "Your free trial has ended. Subscribe to keep receiving check-ins."
    if days_remaining == 1:
        return "Trial Ends Tomorrow", "Your free trial ends tomorrow. Subscribe to keep receiving check-ins."
    return (
        "Trial Ending Soon",
        f"Your free trial ends in {days_remaining} days. Subscribe to keep receiving check-ins.",
    )


async def send_trial_ending_reminders(
    db: AsyncSession,
    now: datetime,
    dispatcher: NotificationDispatcher | None,
    reminder_days: Iterable[int] = (3, 1, 0),
) -> int:
    """Notify receivers whose trial ends in one of ``reminder_days`` days.

    At most one trial_ending notification per receiver per UTC day.
    Returns the number of receivers notified.
    """
    today = utc_today(now)
    day_start, _ = utc_day_bounds(today)
    notified = 0

    for days_remaining in reminder_days:
        target_start, target_end = utc_day_bounds(today + timedelta(days=days_remaining))
        result = await db.execute(
            select(ReceiverProfile.user_id).where(
                ReceiverProfile.subscription_status == "trial",
                ReceiverProfile.trial_end_date >= target_start,
                ReceiverProfile.trial_end_date < target_end,
            )
        )
        user_ids = list(result.scalars())
        if not user_ids:
            continue

        already = await db.execute(
            select(Notification.user_id).where(
                Notification.user_id.in_(user_ids),
                Notification.type == "trial_ending",
                Notification.created_at >= day_start,
            )
        )
        skip = set(already.scalars())
        for user_id in user_ids:
            if user_id in skip:
                continue
            title, body = _trial_message(days_remaining)
            if await safe_dispatch(
                dispatcher,
                "trial_ending",
                user_id,
                [user_id],
                {"days_remaining": days_remaining, "title": title, "body": body},
            ):
                notified += 1

    logger.info("Trial ending reminders sent: %d", notified)
    return notified
