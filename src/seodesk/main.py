"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from redis.exceptions import RedisError

from seodesk.auth.router import router as auth_router
from seodesk.config import get_settings
from seodesk.dashboard.router import router as dashboard_router
from seodesk.database import close_db, init_db
from seodesk.groups.router import router as groups_router
from seodesk.health.router import router as health_router
from seodesk.middleware import setup_middleware
from seodesk.redis_client import close_redis, init_redis
from seodesk.sites.router import router as sites_router
from seodesk.tags.router import router as tags_router
from seodesk.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database engine and the Redis pool; close both on shutdown."""
    settings = get_settings()
    await init_db(settings.database_url)
    try:
        await init_redis(settings.redis_url)
    except (RedisError, OSError) as e:
        # Discovery then runs inline and rate limiting is off.
        logger.warning("redis_unavailable", url=settings.redis_url, error=str(e))

    if not settings.google_configured:
        logger.warning("google_credentials_missing")

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SEODesk API",
        description="Search Console reporting across all of a user's sites",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(dashboard_router)
    app.include_router(groups_router)
    app.include_router(tags_router)
    app.include_router(sites_router)

    return app


app = create_app()
