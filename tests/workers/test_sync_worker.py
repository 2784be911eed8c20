"""arq jobs: discovery, single-site sync and the nightly sweep."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from seodesk.db.models import Site, SiteMetric, User
from seodesk.gsc.client import MetricData
from seodesk.sites.sync import SyncReconciler
from seodesk.workers.settings import WorkerSettings
from seodesk.workers.sync_worker import discover_sites_job, sync_all_sites, sync_site_job


def today() -> date:
    return datetime.now(timezone.utc).date()


class TestDiscoverJob:
    @pytest.mark.asyncio
    async def test_returns_added_count(self, user, fake_gsc):
        fake_gsc.sites = ["sc-domain:a.com"]
        assert await discover_sites_job({"gsc": fake_gsc}, str(user.id)) == 1
        assert await discover_sites_job({"gsc": fake_gsc}, str(user.id)) == 0

    @pytest.mark.asyncio
    async def test_failure_returns_zero(self, user, fake_gsc):
        fake_gsc.fail_with()
        assert await discover_sites_job({"gsc": fake_gsc}, str(user.id)) == 0


class TestSyncSiteJob:
    @pytest.mark.asyncio
    async def test_sync_one_site(self, db_session, user, fake_gsc, make_site):
        site = await make_site(user, "sc-domain:a.com")
        fake_gsc.metrics["sc-domain:a.com"] = [
            MetricData(date=date(2024, 3, 1), clicks=3, impressions=30, ctr=0.1, avg_position=5.0)
        ]

        ok = await sync_site_job({"gsc": fake_gsc}, str(user.id), str(site.id), "2024-03-01", "2024-03-02")

        assert ok is True
        rows = (await db_session.execute(select(SiteMetric).where(SiteMetric.site_id == site.id))).scalars().all()
        assert [(r.date, r.clicks) for r in rows] == [(date(2024, 3, 1), 3)]

    @pytest.mark.asyncio
    async def test_failure_reported(self, user, fake_gsc, make_site):
        site = await make_site(user, "sc-domain:a.com")
        fake_gsc.fail_with()
        assert await sync_site_job({"gsc": fake_gsc}, str(user.id), str(site.id), "2024-03-01", "2024-03-02") is False


class TestSyncAllSites:
    """Nightly sweep over every syncable site."""

    @pytest.mark.asyncio
    async def test_syncs_recent_window(self, db_session, user, fake_gsc, make_site):
        site = await make_site(user, "sc-domain:a.com")
        recent = today() - timedelta(days=1)
        old = today() - timedelta(days=30)
        fake_gsc.metrics["sc-domain:a.com"] = [
            MetricData(date=recent, clicks=2, impressions=20, ctr=0.1, avg_position=1.0),
            MetricData(date=old, clicks=9, impressions=90, ctr=0.1, avg_position=1.0),
        ]

        summary = await sync_all_sites({"gsc": fake_gsc})

        assert summary == {"synced": 1, "failed": 0}
        rows = (await db_session.execute(select(SiteMetric).where(SiteMetric.site_id == site.id))).scalars().all()
        assert [r.date for r in rows] == [recent]

    @pytest.mark.asyncio
    async def test_skips_users_without_token(self, db_session, user, fake_gsc, make_site):
        tokenless = User(google_id="google-2", email="nt@example.com", name="No Token", google_refresh_token="")
        db_session.add(tokenless)
        await db_session.commit()
        await make_site(user, "sc-domain:a.com")
        await make_site(tokenless, "sc-domain:b.com")

        summary = await sync_all_sites({"gsc": fake_gsc})

        assert summary == {"synced": 1, "failed": 0}
        assert ("get_metrics", "sc-domain:b.com") not in fake_gsc.calls

    @pytest.mark.asyncio
    async def test_failures_counted_not_raised(self, db_session, user, fake_gsc, make_site):
        a = await make_site(user, "sc-domain:a.com")
        b = await make_site(user, "sc-domain:b.com")
        site_ids = [a.id, b.id]
        fake_gsc.fail_with()

        summary = await sync_all_sites({"gsc": fake_gsc})

        assert summary == {"synced": 0, "failed": 2}
        result = await db_session.execute(
            select(Site).where(Site.id.in_(site_ids)).execution_options(populate_existing=True)
        )
        assert all(s.sync_error for s in result.scalars())

    @pytest.mark.asyncio
    async def test_crashed_site_does_not_stop_batch(self, monkeypatch, user, fake_gsc, make_site):
        await make_site(user, "sc-domain:a.com")
        await make_site(user, "sc-domain:b.com")
        original = SyncReconciler.sync_site
        attempted = []

        async def crash_first(self, user_id, site_id, start, end):
            attempted.append(site_id)
            if len(attempted) == 1:
                raise OperationalError("UPDATE sites", {}, Exception("database is locked"))
            return await original(self, user_id, site_id, start, end)

        monkeypatch.setattr(SyncReconciler, "sync_site", crash_first)

        summary = await sync_all_sites({"gsc": fake_gsc})

        assert summary == {"synced": 1, "failed": 1}
        assert len(attempted) == 2

    @pytest.mark.asyncio
    async def test_no_sites(self, database, fake_gsc):
        assert await sync_all_sites({"gsc": fake_gsc}) == {"synced": 0, "failed": 0}


class TestWorkerSettings:
    def test_registers_jobs_and_nightly_cron(self):
        names = {f.__name__ for f in WorkerSettings.functions}
        assert names == {"discover_sites_job", "sync_site_job", "sync_all_sites"}
        assert len(WorkerSettings.cron_jobs) == 1
        assert WorkerSettings.cron_jobs[0].hour == {3}
