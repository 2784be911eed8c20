"""Per-date rollups across sites."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from seodesk.metrics.arithmetic import MetricLike, aggregate


@dataclass(frozen=True)
class TimeSeriesPoint:
    """Metrics for a single calendar day (``date`` is ISO ``YYYY-MM-DD``)."""

    date: str
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    avg_position: float = 0.0
    keywords_count: int = 0


class DatedMetric(MetricLike, Protocol):
    """Stored metric row shape: raw metrics plus a calendar date."""

    date: date
    ctr: float


def to_points(rows: Iterable[DatedMetric]) -> list[TimeSeriesPoint]:
    """Map stored daily rows to points ordered by date. Stored values are kept as-is."""
    return [
        TimeSeriesPoint(
            date=row.date.isoformat(),
            clicks=row.clicks,
            impressions=row.impressions,
            ctr=row.ctr,
            avg_position=row.avg_position,
            keywords_count=row.keywords_count,
        )
        for row in sorted(rows, key=lambda r: r.date)
    ]


def aggregate_by_date(series_per_site: Iterable[Iterable[TimeSeriesPoint]]) -> list[TimeSeriesPoint]:
    """Roll up every site's points into one point per date, ascending.

    Dates a site has no row for simply contribute nothing; there is no
    zero-filling. ISO date strings sort chronologically.
    """
    by_date: dict[str, list[TimeSeriesPoint]] = defaultdict(list)
    for series in series_per_site:
        for point in series:
            by_date[point.date].append(point)

    rollup = []
    for day in sorted(by_date):
        totals = aggregate(by_date[day])
        rollup.append(
            TimeSeriesPoint(
                date=day,
                clicks=totals.clicks,
                impressions=totals.impressions,
                ctr=totals.ctr,
                avg_position=totals.avg_position,
                keywords_count=totals.keywords_count,
            )
        )
    return rollup
