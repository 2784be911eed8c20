"""Per-site metric sync from Search Console."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from seodesk.common.result import ErrorKind, Result
from seodesk.db.models import Site, SiteMetric, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from seodesk.gsc.client import MetricData, SearchConsole

logger = structlog.get_logger()


class SyncReconciler:
    """Upserts one row per (site, date) from Search Console.

    A sync batch is committed atomically. When fetching or writing fails the
    batch is rolled back, the failure message is stored on the site and the
    rows written by earlier syncs are left untouched.
    """

    def __init__(self, session: AsyncSession, gsc: SearchConsole) -> None:
        self.session = session
        self.gsc = gsc

    async def sync_site(
        self,
        user_id: uuid.UUID,
        site_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> Result[int]:
        """Fetch ``[start_date, end_date]`` for one site and upsert it. Returns the number of dates written."""
        row = (
            await self.session.execute(
                select(Site.property_id, User.google_refresh_token)
                .join(User, User.id == Site.user_id)
                .where(Site.id == site_id, Site.user_id == user_id)
            )
        ).one_or_none()
        if row is None:
            return Result.not_found("Site")
        property_id, refresh_token = row

        log = logger.bind(user_id=str(user_id), site_id=str(site_id), property_id=property_id)

        try:
            if not refresh_token:
                msg = "User has no Search Console refresh token"
                raise ValueError(msg)

            metrics, keyword_counts = await self._fetch(refresh_token, property_id, start_date, end_date)
            written = await self._upsert(site_id, metrics, keyword_counts)
            await self.session.execute(
                update(Site)
                .where(Site.id == site_id)
                .values(last_synced_at=datetime.now(timezone.utc), sync_error=None)
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            await self.session.execute(update(Site).where(Site.id == site_id).values(sync_error=str(e)))
            await self.session.commit()
            log.warning("site_sync_failed", error=str(e))
            return Result.fail(f"Sync failed: {e}", ErrorKind.EXTERNAL)

        log.info("site_synced", start=start_date.isoformat(), end=end_date.isoformat(), rows=written)
        return Result.success(written)

    async def _fetch(
        self, refresh_token: str, property_id: str, start_date: date, end_date: date
    ) -> tuple[list[MetricData], dict[date, int]]:
        """Fetch metrics and keyword counts concurrently; the first failure cancels the other call."""
        try:
            async with asyncio.TaskGroup() as tg:
                metrics = tg.create_task(self.gsc.get_metrics(refresh_token, property_id, start_date, end_date))
                keywords = tg.create_task(
                    self.gsc.get_keyword_counts_by_date(refresh_token, property_id, start_date, end_date)
                )
        except ExceptionGroup as eg:
            raise eg.exceptions[0] from None
        return metrics.result(), keywords.result()

    async def _upsert(self, site_id: uuid.UUID, metrics: list[MetricData], keyword_counts: dict[date, int]) -> int:
        dates = {m.date for m in metrics}
        if not dates:
            return 0

        result = await self.session.execute(
            select(SiteMetric).where(SiteMetric.site_id == site_id, SiteMetric.date.in_(dates))
        )
        existing = {row.date: row for row in result.scalars()}

        for m in metrics:
            keywords = keyword_counts.get(m.date, 0)
            row = existing.get(m.date)
            if row is None:
                row = SiteMetric(site_id=site_id, date=m.date)
                self.session.add(row)
                existing[m.date] = row
            row.clicks = m.clicks
            row.impressions = m.impressions
            row.ctr = m.ctr
            row.avg_position = m.avg_position
            row.keywords_count = keywords

        await self.session.flush()
        return len(dates)
