"""Search Console REST client against a mocked transport."""

import json
from datetime import date

import httpx
import pytest

from seodesk.gsc.client import TOKEN_URL, SearchConsoleClient, SearchConsoleError


class FakeGoogle:
    """Routes token, sites and searchAnalytics calls; records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.site_entries: list[dict] = []
        self.rows: list[dict] = []
        self.failures: list[int] = []
        self.token_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == TOKEN_URL:
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "access-1", "expires_in": 3600})
        if self.failures:
            return httpx.Response(self.failures.pop(0), json={"error": {"message": "backend error"}})
        if request.url.path.endswith("/sites"):
            return httpx.Response(200, json={"siteEntry": self.site_entries})
        body = json.loads(request.content)
        start = body["startRow"]
        return httpx.Response(200, json={"rows": self.rows[start : start + body["rowLimit"]]})

    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) != TOKEN_URL]


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def make_client(google: FakeGoogle):
    def _make(page_size: int = 2) -> SearchConsoleClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(google))
        return SearchConsoleClient("cid", "secret", http=http, retry_delays=(0, 0, 0), page_size=page_size)

    return _make


class TestListSites:
    """Site listing."""

    @pytest.mark.asyncio
    async def test_skips_unverified_and_dedupes(self, google, make_client):
        google.site_entries = [
            {"siteUrl": "sc-domain:a.com", "permissionLevel": "siteOwner"},
            {"siteUrl": "https://www.a.com/", "permissionLevel": "siteOwner"},
            {"siteUrl": "https://b.com/", "permissionLevel": "siteUnverifiedUser"},
            {"siteUrl": "https://c.com/", "permissionLevel": "siteFullUser"},
        ]
        client = make_client()
        assert await client.list_sites("refresh") == ["sc-domain:a.com", "https://c.com/"]

    @pytest.mark.asyncio
    async def test_no_entries(self, google, make_client):
        assert await make_client().list_sites("refresh") == []

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self, google, make_client):
        await make_client().list_sites("refresh")
        assert google.api_requests()[0].headers["Authorization"] == "Bearer access-1"


class TestMetrics:
    """Paginated search analytics."""

    @pytest.mark.asyncio
    async def test_paginates_until_short_page(self, google, make_client):
        google.rows = [
            {"keys": [f"2024-01-0{d}"], "clicks": d, "impressions": 10 * d, "ctr": 0.1, "position": 2.5}
            for d in range(1, 6)
        ]
        metrics = await make_client(page_size=2).get_metrics("refresh", "sc-domain:a.com", date(2024, 1, 1), date(2024, 1, 5))

        assert [m.date for m in metrics] == [date(2024, 1, d) for d in range(1, 6)]
        assert metrics[2].clicks == 3
        assert metrics[2].impressions == 30
        assert metrics[0].avg_position == 2.5
        start_rows = [json.loads(r.content)["startRow"] for r in google.api_requests()]
        assert start_rows == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_property_id_is_url_encoded(self, google, make_client):
        await make_client().get_metrics("refresh", "sc-domain:a.com", date(2024, 1, 1), date(2024, 1, 1))
        assert "sc-domain%3Aa.com" in str(google.api_requests()[0].url)

    @pytest.mark.asyncio
    async def test_keyword_counts_per_day(self, google, make_client):
        google.rows = [
            {"keys": ["2024-01-01", "seo tools"]},
            {"keys": ["2024-01-01", "rank tracker"]},
            {"keys": ["2024-01-02", "seo tools"]},
        ]
        counts = await make_client(page_size=10).get_keyword_counts_by_date(
            "refresh", "sc-domain:a.com", date(2024, 1, 1), date(2024, 1, 2)
        )
        assert counts == {date(2024, 1, 1): 2, date(2024, 1, 2): 1}


class TestRetries:
    """Backoff and error surfacing."""

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, google, make_client):
        google.failures = [503, 429]
        google.site_entries = [{"siteUrl": "sc-domain:a.com", "permissionLevel": "siteOwner"}]
        assert await make_client().list_sites("refresh") == ["sc-domain:a.com"]
        assert len(google.api_requests()) == 3

    @pytest.mark.asyncio
    async def test_raises_after_retries_exhausted(self, google, make_client):
        google.failures = [503, 503, 503, 503]
        with pytest.raises(SearchConsoleError) as exc_info:
            await make_client().list_sites("refresh")
        assert exc_info.value.status_code == 503
        assert "backend error" in str(exc_info.value)
        assert len(google.api_requests()) == 4

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self, google, make_client):
        google.failures = [403]
        with pytest.raises(SearchConsoleError) as exc_info:
            await make_client().list_sites("refresh")
        assert exc_info.value.status_code == 403
        assert len(google.api_requests()) == 1

    @pytest.mark.asyncio
    async def test_token_refresh_failure(self, google, make_client):
        google.token_status = 400
        with pytest.raises(SearchConsoleError) as exc_info:
            await make_client().list_sites("refresh")
        assert exc_info.value.status_code == 400
        assert google.api_requests() == []


class TestAccessTokenCache:
    @pytest.mark.asyncio
    async def test_token_reused(self, google, make_client):
        client = make_client()
        await client.list_sites("refresh")
        await client.list_sites("refresh")
        token_calls = [r for r in google.requests if str(r.url) == TOKEN_URL]
        assert len(token_calls) == 1

    @pytest.mark.asyncio
    async def test_unauthorized_drops_cached_token(self, google, make_client):
        client = make_client()
        await client.list_sites("refresh")
        google.failures = [401]
        with pytest.raises(SearchConsoleError):
            await client.list_sites("refresh")
        await client.list_sites("refresh")
        token_calls = [r for r in google.requests if str(r.url) == TOKEN_URL]
        assert len(token_calls) == 2


class TestHttpLifecycle:
    @pytest.mark.asyncio
    async def test_pool_not_opened_until_first_call(self):
        client = SearchConsoleClient("cid", "secret")
        assert client._http is None
        await client.aclose()
        assert client._http is None

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, google):
        http = httpx.AsyncClient(transport=httpx.MockTransport(google))
        client = SearchConsoleClient("cid", "secret", http=http, retry_delays=(0, 0, 0))
        await client.list_sites("refresh")
        await client.aclose()
        assert not http.is_closed
        await http.aclose()
