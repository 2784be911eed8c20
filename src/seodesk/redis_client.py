"""Shared Redis pool.

The pool is an ``ArqRedis`` so the same connection serves rate limiting,
readiness checks and job enqueueing for the arq workers.
"""

from __future__ import annotations

from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

_pool: ArqRedis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis pool from a redis:// DSN."""
    global _pool  # noqa: PLW0603
    _pool = await create_pool(RedisSettings.from_dsn(url))


async def close_redis() -> None:
    """Close the Redis pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> ArqRedis:
    """Get the Redis pool. Raises RuntimeError when not initialized."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def enqueue(function: str, *args: Any, **kwargs: Any) -> str | None:  # noqa: ANN401
    """Enqueue an arq job by function name. Returns the job id."""
    job = await get_redis().enqueue_job(function, *args, **kwargs)
    return job.job_id if job else None
