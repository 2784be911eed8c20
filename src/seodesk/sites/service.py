"""Site lookups and per-site user settings (tags, favorite flag, export rows)."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select

from seodesk.db.models import Site, SiteMetric, SiteTag, Tag
from seodesk.metrics.timeseries import TimeSeriesPoint, to_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def resolve_site(db: AsyncSession, user_id: uuid.UUID, site_ref: str) -> Site | None:
    """Find a user's site by its UUID, falling back to its Search Console property id."""
    try:
        site_id = uuid.UUID(site_ref)
    except ValueError:
        site_id = None

    if site_id is not None:
        result = await db.execute(select(Site).where(Site.id == site_id, Site.user_id == user_id))
        site = result.scalar_one_or_none()
        if site is not None:
            return site

    result = await db.execute(select(Site).where(Site.property_id == site_ref, Site.user_id == user_id))
    return result.scalar_one_or_none()


async def update_site_tags(db: AsyncSession, site: Site, tag_ids: list[uuid.UUID]) -> None:
    """
    Replace the site's tag links with ``tag_ids``.

    Raises:
        ValueError: If any tag does not exist or belongs to another user.
    """
    wanted = list(dict.fromkeys(tag_ids))
    if wanted:
        result = await db.execute(select(Tag.id).where(Tag.user_id == site.user_id, Tag.id.in_(wanted)))
        if len(set(result.scalars())) != len(wanted):
            msg = "Some tags not found"
            raise ValueError(msg)

    await db.execute(delete(SiteTag).where(SiteTag.site_id == site.id))
    for tag_id in wanted:
        db.add(SiteTag(site_id=site.id, tag_id=tag_id))
    await db.flush()
    logger.info("site_tags_updated", site_id=str(site.id), tags=len(wanted))


async def set_favorite(db: AsyncSession, site: Site, is_favorite: bool) -> None:
    site.is_favorite = is_favorite
    await db.flush()


async def export_points(db: AsyncSession, site_id: uuid.UUID, date_from: date, date_to: date) -> list[TimeSeriesPoint]:
    """Stored daily rows for one site within ``[date_from, date_to]``, ascending."""
    result = await db.execute(
        select(SiteMetric).where(
            SiteMetric.site_id == site_id,
            SiteMetric.date >= date_from,
            SiteMetric.date <= date_to,
        )
    )
    return to_points(result.scalars())
