"""Dashboard composition.

Loads a user's sites, narrows them by group and tag, rolls their stored
daily metrics up into per-site totals, a sorted site list, an overall
summary and a per-date series. An optional second window produces the
comparison block over the same sites.
"""

from __future__ import annotations

import enum
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from seodesk.common.result import ErrorKind, Result
from seodesk.db.models import Site, SiteMetric, SiteTag
from seodesk.metrics.arithmetic import MetricTotals, aggregate
from seodesk.metrics.timeseries import TimeSeriesPoint, aggregate_by_date, to_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from seodesk.sites.discovery import SiteReconciler

logger = structlog.get_logger()


class SortField(str, enum.Enum):
    """What the site list is ordered by."""

    CLICKS = "clicks"
    IMPRESSIONS = "impressions"
    NAME = "name"

    @classmethod
    def parse(cls, value: str | None) -> SortField:
        """Case-insensitive lookup; anything unrecognised sorts by clicks."""
        if not value:
            return cls.CLICKS
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.CLICKS


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | None) -> SortDirection:
        """Absent means descending; any supplied value other than ``desc`` means ascending."""
        if value is None:
            return cls.DESC
        return cls.DESC if value.strip().lower() == "desc" else cls.ASC


@dataclass(frozen=True)
class DashboardQuery:
    """One dashboard request. ``None`` filters mean "All"."""

    user_id: uuid.UUID
    date_from: date
    date_to: date
    group_id: uuid.UUID | None = None
    tag_id: uuid.UUID | None = None
    sort_by: SortField = SortField.CLICKS
    sort_dir: SortDirection = SortDirection.DESC
    compare_from: date | None = None
    compare_to: date | None = None


@dataclass
class SiteSummary:
    """A site row on the dashboard with its totals and daily series."""

    id: uuid.UUID
    property_id: str
    domain: str
    group_id: uuid.UUID | None
    is_favorite: bool
    last_synced: datetime | None
    sync_error: str | None
    tags: list[str] = field(default_factory=list)
    tag_ids: list[uuid.UUID] = field(default_factory=list)
    totals: MetricTotals = field(default_factory=MetricTotals)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)


@dataclass
class ComparisonData:
    summary: MetricTotals = field(default_factory=MetricTotals)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)


@dataclass
class DashboardData:
    """Composed dashboard.

    ``total_user_sites`` counts the user's sites before filtering, so an
    empty ``sites`` list with a non-zero total means "nothing matches the
    filter" rather than "no sites yet".
    """

    summary: MetricTotals = field(default_factory=MetricTotals)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)
    sites: list[SiteSummary] = field(default_factory=list)
    total_user_sites: int = 0
    comparison: ComparisonData | None = None


_SORT_KEYS = {
    SortField.CLICKS: lambda s: s.totals.clicks,
    SortField.IMPRESSIONS: lambda s: s.totals.impressions,
    SortField.NAME: lambda s: s.domain,
}


def sort_sites(sites: list[SiteSummary], sort_by: SortField, sort_dir: SortDirection) -> list[SiteSummary]:
    """Ascending by the chosen key, then the whole list reversed for descending."""
    ordered = sorted(sites, key=_SORT_KEYS[sort_by])
    if sort_dir is SortDirection.DESC:
        ordered.reverse()
    return ordered


class DashboardComposer:
    """Builds the dashboard for one user.

    When the user has no sites at all and a reconciler is supplied, discovery
    runs once before giving up. Discovery failures are logged and do not fail
    the dashboard.
    """

    def __init__(self, session: AsyncSession, reconciler: SiteReconciler | None = None) -> None:
        self.session = session
        self.reconciler = reconciler

    async def compose(self, query: DashboardQuery) -> Result[DashboardData]:
        try:
            return Result.success(await self._compose(query))
        except SQLAlchemyError:
            logger.exception("dashboard_compose_failed", user_id=str(query.user_id))
            return Result.fail("Dashboard could not be loaded", ErrorKind.EXTERNAL)

    async def _compose(self, query: DashboardQuery) -> DashboardData:
        sites = await self._load_sites(query.user_id)
        if not sites and self.reconciler is not None:
            discovered = await self.reconciler.discover(query.user_id)
            if discovered.ok:
                logger.info("dashboard_discovery", user_id=str(query.user_id), added=discovered.value)
            else:
                logger.warning("dashboard_discovery_failed", user_id=str(query.user_id), error=discovered.error)
            sites = await self._load_sites(query.user_id)

        total_user_sites = len(sites)
        if query.group_id is not None:
            sites = [s for s in sites if s.group_id == query.group_id]
        if query.tag_id is not None:
            sites = [s for s in sites if any(link.tag_id == query.tag_id for link in s.site_tags)]

        if not sites:
            return DashboardData(total_user_sites=total_user_sites)

        site_ids = [s.id for s in sites]
        metrics = await self._load_metrics(site_ids, query.date_from, query.date_to)

        summaries = [self._site_summary(site, metrics.get(site.id, [])) for site in sites]
        summaries = sort_sites(summaries, query.sort_by, query.sort_dir)

        data = DashboardData(
            summary=aggregate(s.totals for s in summaries),
            time_series=aggregate_by_date(s.time_series for s in summaries),
            sites=summaries,
            total_user_sites=total_user_sites,
        )

        if query.compare_from is not None and query.compare_to is not None:
            data.comparison = await self._comparison(site_ids, query.compare_from, query.compare_to)

        return data

    async def _comparison(self, site_ids: list[uuid.UUID], start: date, end: date) -> ComparisonData:
        metrics = await self._load_metrics(site_ids, start, end)
        per_site = [metrics.get(site_id, []) for site_id in site_ids]
        return ComparisonData(
            summary=aggregate(aggregate(rows) for rows in per_site),
            time_series=aggregate_by_date(to_points(rows) for rows in per_site),
        )

    @staticmethod
    def _site_summary(site: Site, rows: list[SiteMetric]) -> SiteSummary:
        links = sorted(site.site_tags, key=lambda link: link.tag.name)
        return SiteSummary(
            id=site.id,
            property_id=site.property_id,
            domain=site.domain,
            group_id=site.group_id,
            is_favorite=site.is_favorite,
            last_synced=site.last_synced_at,
            sync_error=site.sync_error,
            tags=[link.tag.name for link in links],
            tag_ids=[link.tag_id for link in links],
            totals=aggregate(rows),
            time_series=to_points(rows),
        )

    async def _load_sites(self, user_id: uuid.UUID) -> list[Site]:
        result = await self.session.execute(
            select(Site)
            .where(Site.user_id == user_id)
            .options(selectinload(Site.site_tags).selectinload(SiteTag.tag))
            .order_by(Site.created_at, Site.domain)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    async def _load_metrics(
        self, site_ids: list[uuid.UUID], start: date, end: date
    ) -> dict[uuid.UUID, list[SiteMetric]]:
        """Stored rows per site within ``[start, end]`` inclusive."""
        result = await self.session.execute(
            select(SiteMetric)
            .where(SiteMetric.site_id.in_(site_ids), SiteMetric.date >= start, SiteMetric.date <= end)
            .order_by(SiteMetric.date)
        )
        by_site: dict[uuid.UUID, list[SiteMetric]] = defaultdict(list)
        for row in result.scalars():
            by_site[row.site_id].append(row)
        return by_site
