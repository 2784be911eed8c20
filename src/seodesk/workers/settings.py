"""arq worker settings.

Run with: arq seodesk.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from seodesk.config import get_settings
from seodesk.workers.sync_worker import (
    discover_sites_job,
    shutdown,
    startup,
    sync_all_sites,
    sync_site_job,
)


class WorkerSettings:
    """Discovery and sync jobs plus the nightly sync cron (03:00 UTC)."""

    functions = [discover_sites_job, sync_site_job, sync_all_sites]
    cron_jobs = [cron(sync_all_sites, hour={3}, minute={0}, run_at_startup=False)]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
    job_timeout = 600


__all__ = ["WorkerSettings"]
