"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database. Redis is never
initialised, so rate limiting passes through and discovery hand-off falls
back to the inline path (which tests replace through dependency overrides).
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable, Iterable
from datetime import date
from typing import Any

os.environ.setdefault("SEODESK_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SEODESK_JWT_SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")
os.environ.setdefault("SEODESK_LOG_FORMAT", "console")
os.environ.setdefault("SEODESK_GOOGLE_CLIENT_ID", "")
os.environ.setdefault("SEODESK_GOOGLE_CLIENT_SECRET", "")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.google_oauth import GoogleProfile
from seodesk.auth.jwt import create_access_token
from seodesk.auth.service import upsert_google_user
from seodesk.config import get_settings
from seodesk.database import close_db, get_engine, get_session_factory, init_db
from seodesk.db.base import Base
from seodesk.db.models import Site, SiteMetric, User
from seodesk.dependencies import get_search_console
from seodesk.gsc.client import MetricData, SearchConsoleError
from seodesk.main import create_app
from seodesk.sites.scheduling import get_discovery_scheduler

get_settings.cache_clear()


class FakeSearchConsole:
    """In-memory Search Console with the same async surface as the real client."""

    def __init__(self) -> None:
        self.sites: list[str] = []
        self.metrics: dict[str, list[MetricData]] = {}
        self.keyword_counts: dict[str, dict[date, int]] = {}
        self.error: Exception | None = None
        self.calls: list[tuple[str, Any]] = []

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    async def list_sites(self, refresh_token: str) -> list[str]:
        self.calls.append(("list_sites", refresh_token))
        self._maybe_fail()
        return list(self.sites)

    async def get_metrics(self, refresh_token: str, property_id: str, start: date, end: date) -> list[MetricData]:
        self.calls.append(("get_metrics", property_id))
        self._maybe_fail()
        return [m for m in self.metrics.get(property_id, []) if start <= m.date <= end]

    async def get_keyword_counts_by_date(
        self, refresh_token: str, property_id: str, start: date, end: date
    ) -> dict[date, int]:
        self.calls.append(("get_keyword_counts_by_date", property_id))
        self._maybe_fail()
        counts = self.keyword_counts.get(property_id, {})
        return {d: c for d, c in counts.items() if start <= d <= end}

    def fail_with(self, message: str = "Search Console request failed (503): backend error") -> None:
        self.error = SearchConsoleError(message, 503)


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema on a private in-memory database."""
    await init_db("sqlite+aiosqlite://")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def fake_gsc() -> FakeSearchConsole:
    return FakeSearchConsole()


@pytest.fixture
def discovery_calls() -> list:
    """User ids handed to the discovery scheduler by the login callback."""
    return []


@pytest.fixture
def app(fake_gsc: FakeSearchConsole, discovery_calls: list) -> FastAPI:
    application = create_app()

    async def _gsc() -> AsyncGenerator[FakeSearchConsole, None]:
        yield fake_gsc

    async def _schedule(user_id: Any) -> str:  # noqa: ANN401
        discovery_calls.append(user_id)
        return "queued"

    application.dependency_overrides[get_search_console] = _gsc
    application.dependency_overrides[get_discovery_scheduler] = lambda: _schedule
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI, database: None) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app (lifespan not run; the database fixture stands in for it)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """A provisioned user with default group, system tag and preferences."""
    profile = GoogleProfile(
        google_id="google-123",
        email="owner@example.com",
        name="Site Owner",
        picture="https://example.com/avatar.png",
        refresh_token="refresh-token-1",
    )
    created, _ = await upsert_google_user(db_session, profile)
    await db_session.commit()
    return created


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client carrying a session token for ``user``."""
    token = create_access_token(user.id, user.email, user.name, user.plan.value)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest.fixture
def make_site(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory: ``await make_site(user, "sc-domain:a.com", domain="a.com", group_id=None)``."""

    async def _make(owner: User, property_id: str, domain: str | None = None, group_id: Any = None) -> Site:  # noqa: ANN401
        site = Site(
            user_id=owner.id,
            property_id=property_id,
            domain=domain or property_id.removeprefix("sc-domain:"),
            group_id=group_id,
        )
        db_session.add(site)
        await db_session.commit()
        return site

    return _make


@pytest.fixture
def add_metrics(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory: ``await add_metrics(site, [(date, clicks, impressions, position, keywords), ...])``."""

    async def _add(site: Site, rows: Iterable[tuple[date, int, int, float, int]]) -> None:
        for day, clicks, impressions, position, keywords in rows:
            db_session.add(
                SiteMetric(
                    site_id=site.id,
                    date=day,
                    clicks=clicks,
                    impressions=impressions,
                    ctr=clicks / impressions if impressions else 0.0,
                    avg_position=position,
                    keywords_count=keywords,
                )
            )
        await db_session.commit()

    return _add
