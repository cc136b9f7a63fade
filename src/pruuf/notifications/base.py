"""Outbound notification contract.

The engine hands ``(type, sender_id, receiver_ids, payload)`` to a
dispatcher and never waits on delivery. Preference filtering, per-channel
delivery, and dropping undeliverable messages are the dispatcher's job.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = frozenset({
    "ping_completed",
    "ping_completed_late",
    "ping_missed",
    "ping_reminder",
    "sender_ok_confirmation",
    "trial_ending",
    "break_started",
    "break_ended",
})


class NotificationDispatcher(Protocol):
    async def dispatch(
        self,
        type_: str,
        sender_id: str,
        receiver_ids: list[str],
        payload: dict[str, Any],
    ) -> None: ...


async def safe_dispatch(
    dispatcher: NotificationDispatcher | None,
    type_: str,
    sender_id: str,
    receiver_ids: list[str],
    payload: dict[str, Any] | None = None,
) -> bool:
    """Dispatch, logging and swallowing any failure.

    Check-in state must never depend on push delivery, so callers invoke
    this after their own commit. Returns True when the dispatcher accepted
    the message.
    """
    if dispatcher is None or not receiver_ids:
        return False
    if type_ not in NOTIFICATION_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {sorted(NOTIFICATION_TYPES)}")
    try:
        await dispatcher.dispatch(type_, sender_id, list(receiver_ids), payload or {})
    except Exception:
        logger.warning(
            "Failed to dispatch %s notification for sender %s to %d receivers",
            type_,
            sender_id,
            len(receiver_ids),
            exc_info=True,
        )
        return False
    return True
