"""Weighted Search Console metric arithmetic.

Search Console reports position per row already averaged over that row's
impressions, so combining rows must weight each position by its
impressions. A zero-impression row therefore never moves the average.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol


class MetricLike(Protocol):
    """Anything carrying raw daily metrics: ORM rows, points or totals."""

    clicks: int
    impressions: int
    avg_position: float
    keywords_count: int


@dataclass(frozen=True)
class MetricTotals:
    """Aggregate over one or more metric rows."""

    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    avg_position: float = 0.0
    keywords_count: int = 0


def click_through_rate(clicks: int, impressions: int) -> float:
    """clicks / impressions, or 0 when there were no impressions."""
    return clicks / impressions if impressions > 0 else 0.0


def aggregate(rows: Iterable[MetricLike]) -> MetricTotals:
    """Combine metric rows into totals.

    Clicks, impressions and keyword counts are summed (keyword counts are not
    de-duplicated across rows). CTR is recomputed from the summed counts and
    average position is the impressions-weighted mean. Empty input yields
    all zeros.
    """
    clicks = 0
    impressions = 0
    weighted_position = 0.0
    keywords = 0

    for row in rows:
        clicks += row.clicks
        impressions += row.impressions
        weighted_position += row.avg_position * row.impressions
        keywords += row.keywords_count

    return MetricTotals(
        clicks=clicks,
        impressions=impressions,
        ctr=click_through_rate(clicks, impressions),
        avg_position=weighted_position / impressions if impressions > 0 else 0.0,
        keywords_count=keywords,
    )
