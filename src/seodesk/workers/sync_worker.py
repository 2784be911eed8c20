"""arq jobs for site discovery and metric sync.

Every job opens its own database session. Failures are logged and, for
sync, recorded on the site; they never abort a batch.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select

from seodesk.config import get_settings
from seodesk.database import close_db, get_session_factory, init_db
from seodesk.db.models import Site, User
from seodesk.dependencies import build_search_console
from seodesk.sites.discovery import SiteReconciler
from seodesk.sites.sync import SyncReconciler

logger = structlog.get_logger()


async def startup(ctx: dict[str, Any]) -> None:
    """Open the database engine and a shared Search Console client."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["gsc"] = build_search_console()
    logger.info("sync_worker_started")


async def shutdown(ctx: dict[str, Any]) -> None:
    gsc = ctx.pop("gsc", None)
    if gsc is not None:
        await gsc.aclose()
    await close_db()
    logger.info("sync_worker_stopped")


async def discover_sites_job(ctx: dict[str, Any], user_id: str) -> int:
    """Discover new Search Console properties for one user. Returns how many were added."""
    async with get_session_factory()() as session:
        result = await SiteReconciler(session, ctx["gsc"]).discover(uuid.UUID(user_id))
    if not result.ok:
        logger.warning("discover_job_failed", user_id=user_id, error=result.error)
        return 0
    return result.value or 0


async def sync_site_job(ctx: dict[str, Any], user_id: str, site_id: str, start: str, end: str) -> bool:
    """Sync one site for an ISO date range."""
    async with get_session_factory()() as session:
        result = await SyncReconciler(session, ctx["gsc"]).sync_site(
            uuid.UUID(user_id), uuid.UUID(site_id), date.fromisoformat(start), date.fromisoformat(end)
        )
    return result.ok


async def sync_all_sites(ctx: dict[str, Any]) -> dict[str, int]:
    """Nightly sync of the last ``sync_window_days`` days for every site with a usable credential."""
    end = datetime.now(timezone.utc).date()
    start = end - timedelta(days=get_settings().sync_window_days)

    async with get_session_factory()() as session:
        rows = (
            await session.execute(
                select(Site.user_id, Site.id)
                .join(User, User.id == Site.user_id)
                .where(User.google_refresh_token.is_not(None), User.google_refresh_token != "")
                .order_by(Site.user_id, Site.created_at)
            )
        ).all()

    synced = failed = 0
    for user_id, site_id in rows:
        try:
            async with get_session_factory()() as session:
                result = await SyncReconciler(session, ctx["gsc"]).sync_site(user_id, site_id, start, end)
        except Exception:
            logger.exception("site_sync_crashed", user_id=str(user_id), site_id=str(site_id))
            failed += 1
            continue
        if result.ok:
            synced += 1
        else:
            failed += 1

    logger.info("sync_all_complete", sites=len(rows), synced=synced, failed=failed, start=start.isoformat())
    return {"synced": synced, "failed": failed}
