"""Hand-off of site discovery out of the login request.

Discovery normally runs in the arq worker. When the queue is unavailable it
runs inline with a bounded timeout. Either way it opens its own database
session and never fails the caller.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable

import structlog
from redis.exceptions import RedisError

from seodesk.common.result import Result
from seodesk.config import get_settings
from seodesk.database import get_session_factory
from seodesk.dependencies import build_search_console
from seodesk.redis_client import enqueue
from seodesk.sites.discovery import SiteReconciler

logger = structlog.get_logger()

DISCOVER_JOB = "discover_sites_job"

DiscoveryScheduler = Callable[[uuid.UUID], Awaitable[str]]


async def run_discovery(user_id: uuid.UUID) -> Result[int]:
    """Run discovery for one user in a fresh session and client scope."""
    async with get_session_factory()() as session:
        gsc = build_search_console()
        try:
            return await SiteReconciler(session, gsc).discover(user_id)
        finally:
            await gsc.aclose()


async def schedule_discovery(user_id: uuid.UUID) -> str:
    """Queue discovery for ``user_id``, falling back to a bounded inline run.

    Returns ``"queued"``, ``"inline"`` or ``"failed"``.
    """
    try:
        job_id = await enqueue(DISCOVER_JOB, str(user_id))
    except (RuntimeError, RedisError, OSError) as e:
        logger.info("discovery_queue_unavailable", user_id=str(user_id), error=str(e))
    else:
        logger.info("discovery_queued", user_id=str(user_id), job_id=job_id)
        return "queued"

    timeout = get_settings().discovery_inline_timeout_seconds
    try:
        result = await asyncio.wait_for(run_discovery(user_id), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("discovery_inline_timeout", user_id=str(user_id), timeout=timeout)
        return "failed"
    except Exception:
        logger.exception("discovery_inline_error", user_id=str(user_id))
        return "failed"

    if not result.ok:
        logger.warning("discovery_inline_failed", user_id=str(user_id), error=result.error)
        return "failed"
    logger.info("discovery_inline_complete", user_id=str(user_id), added=result.value)
    return "inline"


def get_discovery_scheduler() -> DiscoveryScheduler:
    """FastAPI dependency returning the discovery hand-off."""
    return schedule_discovery
