"""Dashboard response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from seodesk.common.schemas import CamelModel


class MetricTotalsResponse(CamelModel):
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    avg_position: float = 0.0
    keywords_count: int = 0


class TimeSeriesPointResponse(MetricTotalsResponse):
    """One calendar day, ``date`` as ``YYYY-MM-DD``."""

    date: str


class SiteResponse(CamelModel):
    """A site row with its own totals and daily series."""

    id: uuid.UUID
    property_id: str
    domain: str
    group_id: uuid.UUID | None = None
    is_favorite: bool
    last_synced: datetime | None = None
    sync_error: str | None = None
    tags: list[str] = []
    tag_ids: list[uuid.UUID] = []
    totals: MetricTotalsResponse
    time_series: list[TimeSeriesPointResponse] = []


class ComparisonResponse(CamelModel):
    summary: MetricTotalsResponse
    time_series: list[TimeSeriesPointResponse] = []


class DashboardResponse(CamelModel):
    """Dashboard payload. An empty ``sites`` with ``totalUserSites > 0`` means the filter matched nothing."""

    summary: MetricTotalsResponse
    time_series: list[TimeSeriesPointResponse] = []
    sites: list[SiteResponse] = []
    total_user_sites: int = 0
    comparison: ComparisonResponse | None = None
