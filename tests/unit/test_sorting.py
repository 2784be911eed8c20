"""Dashboard site ordering."""

import uuid

import pytest

from seodesk.dashboard.service import SiteSummary, SortDirection, SortField, sort_sites
from seodesk.metrics.arithmetic import MetricTotals


def summary(domain: str, clicks: int, impressions: int = 0) -> SiteSummary:
    return SiteSummary(
        id=uuid.uuid4(),
        property_id=f"sc-domain:{domain}",
        domain=domain,
        group_id=None,
        is_favorite=False,
        last_synced=None,
        sync_error=None,
        totals=MetricTotals(clicks=clicks, impressions=impressions),
    )


class TestSortFieldParse:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, SortField.CLICKS),
            ("", SortField.CLICKS),
            ("clicks", SortField.CLICKS),
            ("IMPRESSIONS", SortField.IMPRESSIONS),
            ("Name", SortField.NAME),
            ("position", SortField.CLICKS),
        ],
    )
    def test_parse(self, raw, expected):
        assert SortField.parse(raw) is expected


class TestSortDirectionParse:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, SortDirection.DESC),
            ("desc", SortDirection.DESC),
            ("DESC", SortDirection.DESC),
            ("asc", SortDirection.ASC),
            ("sideways", SortDirection.ASC),
        ],
    )
    def test_parse(self, raw, expected):
        assert SortDirection.parse(raw) is expected


class TestSortSites:
    def test_clicks_descending(self):
        sites = [summary("a.com", 10), summary("b.com", 30)]
        ordered = sort_sites(sites, SortField.CLICKS, SortDirection.DESC)
        assert [s.domain for s in ordered] == ["b.com", "a.com"]

    def test_name_ascending(self):
        sites = [summary("b.com", 1), summary("a.com", 2)]
        ordered = sort_sites(sites, SortField.NAME, SortDirection.ASC)
        assert [s.domain for s in ordered] == ["a.com", "b.com"]

    def test_impressions(self):
        sites = [summary("a.com", 0, 5), summary("b.com", 0, 50), summary("c.com", 0, 20)]
        ordered = sort_sites(sites, SortField.IMPRESSIONS, SortDirection.ASC)
        assert [s.domain for s in ordered] == ["a.com", "c.com", "b.com"]

    def test_descending_is_reversed_ascending(self):
        """Ties keep stable order ascending, so descending reverses them too."""
        sites = [summary("a.com", 5), summary("b.com", 5), summary("c.com", 1)]
        asc = sort_sites(sites, SortField.CLICKS, SortDirection.ASC)
        desc = sort_sites(sites, SortField.CLICKS, SortDirection.DESC)
        assert [s.domain for s in desc] == [s.domain for s in reversed(asc)]
        assert [s.domain for s in desc] == ["b.com", "a.com", "c.com"]

    def test_input_not_mutated(self):
        sites = [summary("a.com", 1), summary("b.com", 2)]
        sort_sites(sites, SortField.CLICKS, SortDirection.DESC)
        assert [s.domain for s in sites] == ["a.com", "b.com"]
