"""arq worker settings module.

Import path for arq CLI: arq pruuf.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from pruuf.config import get_settings
from pruuf.workers.jobs import (
    check_missed_job,
    cleanup_job,
    generate_pings_job,
    ping_reminders_job,
    refresh_breaks_job,
    shutdown,
    startup,
    trial_ending_job,
)


def _every(minutes: int) -> set[int]:
    return set(range(0, 60, minutes))


_settings = get_settings()


class WorkerSettings:
    """arq worker settings for the ping lifecycle crons (all times UTC)."""

    functions = [
        generate_pings_job,
        check_missed_job,
        ping_reminders_job,
        refresh_breaks_job,
        trial_ending_job,
        cleanup_job,
    ]
    cron_jobs = [
        cron(generate_pings_job, hour=0, minute=0, unique=True),
        cron(check_missed_job, minute=_every(_settings.missed_check_interval_minutes), unique=True),
        cron(ping_reminders_job, minute=_every(_settings.reminder_interval_minutes), unique=True),
        cron(refresh_breaks_job, hour=0, minute=5, unique=True),
        cron(trial_ending_job, hour=9, minute=0, unique=True),
        cron(cleanup_job, hour=3, minute=0, unique=True),
    ]
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
    job_timeout = 600
