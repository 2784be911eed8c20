"""CSV rendering of a site's daily metrics."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from seodesk.metrics.timeseries import TimeSeriesPoint

CSV_HEADER = ["Date", "Clicks", "Impressions", "CTR", "Avg Position", "Keywords Count"]


def render_csv(points: Iterable[TimeSeriesPoint]) -> str:
    """One line per day. CTR has 4 decimals, position 2."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for point in points:
        writer.writerow(
            [
                point.date,
                point.clicks,
                point.impressions,
                f"{point.ctr:.4f}",
                f"{point.avg_position:.2f}",
                point.keywords_count,
            ]
        )
    return buffer.getvalue()
