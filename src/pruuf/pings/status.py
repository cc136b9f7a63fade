"""Ping lifecycle states, allowed transitions, and the per-day status order.

A ping starts ``pending`` (or ``on_break`` when generated inside a break) and
ends ``completed`` or ``missed``. An ``on_break`` ping stays put for its day
unless the break covering it is canceled, which hands it back to
``pending``. Lateness is not a state: a late completion is still
``completed``.

The day-status order ``completed > on_break > pending > missed`` decides what
a calendar day counts as when several pings share it. The generator's status
assignment and the streak calculator both read it from here.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from pruuf.errors import InvalidTransitionError


class PingStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    MISSED = "missed"
    ON_BREAK = "on_break"


class CompletionMethod(str, Enum):
    TAP = "tap"
    IN_PERSON = "in_person"


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    DELETED = "deleted"


VALID_TRANSITIONS: dict[str, list[str]] = {
    PingStatus.PENDING.value: [
        PingStatus.COMPLETED.value,
        PingStatus.MISSED.value,
        PingStatus.ON_BREAK.value,
    ],
    PingStatus.COMPLETED.value: [],
    PingStatus.MISSED.value: [],
    # Only when the break covering that day is canceled.
    PingStatus.ON_BREAK.value: [PingStatus.PENDING.value],
}

TERMINAL_STATUSES = frozenset(s for s, targets in VALID_TRANSITIONS.items() if not targets)


def sources_for(target: str) -> list[str]:
    """States a ping may move to ``target`` from; guarded UPDATEs filter on these."""
    return [s for s, targets in VALID_TRANSITIONS.items() if target in targets]


# Higher wins when collapsing several pings on one day.
DAY_STATUS_PRIORITY: dict[str, int] = {
    PingStatus.COMPLETED.value: 3,
    PingStatus.ON_BREAK.value: 2,
    PingStatus.PENDING.value: 1,
    PingStatus.MISSED.value: 0,
}

# Day statuses that keep a streak alive.
QUALIFYING_DAY_STATUSES = frozenset({PingStatus.COMPLETED.value, PingStatus.ON_BREAK.value})


def validate_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    allowed = VALID_TRANSITIONS.get(current)
    if allowed is None or target not in allowed:
        raise InvalidTransitionError(f"Invalid transition: {current} -> {target}")


def initial_status(on_break: bool) -> str:
    """Status a freshly generated ping starts in."""
    return PingStatus.ON_BREAK.value if on_break else PingStatus.PENDING.value


def collapse_day(statuses: Iterable[str]) -> str | None:
    """Reduce the statuses of one day's pings to the day's status.

    Returns None for an empty iterable (no ping that day).
    """
    best: str | None = None
    for status in statuses:
        if best is None or DAY_STATUS_PRIORITY.get(status, -1) > DAY_STATUS_PRIORITY.get(best, -1):
            best = status
    return best
