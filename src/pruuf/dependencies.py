"""Shared FastAPI dependencies."""

from fastapi import Depends

from pruuf.clock import Clock, get_clock
from pruuf.database import get_session as _get_session
from pruuf.database import get_session_factory
from pruuf.notifications.base import NotificationDispatcher
from pruuf.notifications.dispatcher import DatabaseNotificationDispatcher
from pruuf.redis_client import get_redis

get_db = _get_session


def get_dispatcher(clock: Clock = Depends(get_clock)) -> NotificationDispatcher:  # noqa: B008
    """Notification dispatcher bound to the app's database and Redis pool."""
    return DatabaseNotificationDispatcher(get_session_factory(), redis=get_redis(), clock=clock)


__all__ = ["get_clock", "get_db", "get_dispatcher"]
