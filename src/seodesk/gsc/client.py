"""Google Search Console REST client.

Talks to the Search Console v3 API with a user's OAuth refresh token. Every
call retries on rate limiting (429), server errors (5xx) and transport
failures with a fixed backoff schedule, then raises SearchConsoleError.
Search analytics queries are paginated by ``startRow`` until a short page
comes back.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol
from urllib.parse import quote

import httpx
import structlog

from seodesk.gsc.properties import dedupe_properties

logger = structlog.get_logger()

TOKEN_URL = "https://oauth2.googleapis.com/token"
API_BASE = "https://www.googleapis.com/webmasters/v3"

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 5.0)
DEFAULT_PAGE_SIZE = 25_000


class SearchConsoleError(Exception):
    """Search Console call failed after retries, or returned an unexpected response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class MetricData:
    """One day of site-level metrics as reported by Search Console."""

    date: date
    clicks: int
    impressions: int
    ctr: float
    avg_position: float


class SearchConsole(Protocol):
    """What the reconcilers need from Search Console."""

    async def list_sites(self, refresh_token: str) -> list[str]: ...

    async def get_metrics(
        self, refresh_token: str, property_id: str, start: date, end: date
    ) -> list[MetricData]: ...

    async def get_keyword_counts_by_date(
        self, refresh_token: str, property_id: str, start: date, end: date
    ) -> dict[date, int]: ...


class SearchConsoleClient:
    """Async Search Console client bound to one OAuth application."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        http: httpx.AsyncClient | None = None,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 30.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.retry_delays = tuple(retry_delays)
        self.page_size = page_size
        self.timeout = timeout
        self._owns_http = http is None
        self._http = http
        self._access_tokens: dict[str, str] = {}

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance opened it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> SearchConsoleClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def list_sites(self, refresh_token: str) -> list[str]:
        """Property identifiers visible to the credential, de-duplicated.

        Unverified entries are skipped; a URL-prefix property is dropped when
        a domain property covers the same host.
        """
        response = await self._api("GET", f"{API_BASE}/sites", refresh_token)
        entries = response.json().get("siteEntry") or []
        site_urls = [
            entry["siteUrl"]
            for entry in entries
            if entry.get("siteUrl") and entry.get("permissionLevel") != "siteUnverifiedUser"
        ]
        return dedupe_properties(site_urls)

    async def get_metrics(
        self,
        refresh_token: str,
        property_id: str,
        start: date,
        end: date,
    ) -> list[MetricData]:
        """Daily clicks, impressions, CTR and position for a property."""
        rows = await self._query_all(refresh_token, property_id, start, end, ["date"])
        return [
            MetricData(
                date=date.fromisoformat(row["keys"][0]),
                clicks=int(row.get("clicks", 0)),
                impressions=int(row.get("impressions", 0)),
                ctr=float(row.get("ctr", 0.0)),
                avg_position=float(row.get("position", 0.0)),
            )
            for row in rows
        ]

    async def get_keyword_counts_by_date(
        self,
        refresh_token: str,
        property_id: str,
        start: date,
        end: date,
    ) -> dict[date, int]:
        """Number of distinct queries per day."""
        rows = await self._query_all(refresh_token, property_id, start, end, ["date", "query"])
        counts = Counter(date.fromisoformat(row["keys"][0]) for row in rows)
        return dict(counts)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _query_all(
        self,
        refresh_token: str,
        property_id: str,
        start: date,
        end: date,
        dimensions: list[str],
    ) -> list[dict[str, Any]]:
        url = f"{API_BASE}/sites/{quote(property_id, safe='')}/searchAnalytics/query"
        rows: list[dict[str, Any]] = []
        start_row = 0

        while True:
            body = {
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "dimensions": dimensions,
                "rowLimit": self.page_size,
                "startRow": start_row,
            }
            response = await self._api("POST", url, refresh_token, json=body)
            page = response.json().get("rows") or []
            rows.extend(page)

            if len(page) < self.page_size:
                break
            start_row += self.page_size

        logger.debug("gsc_query_complete", property_id=property_id, dimensions=dimensions, rows=len(rows))
        return rows

    async def _api(self, method: str, url: str, refresh_token: str, **kwargs: Any) -> httpx.Response:  # noqa: ANN401
        token = await self._access_token(refresh_token)
        response = await self._request(method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs)
        if response.status_code == 401:
            self._access_tokens.pop(refresh_token, None)
        self._raise_for_status(response)
        return response

    async def _access_token(self, refresh_token: str) -> str:
        cached = self._access_tokens.get(refresh_token)
        if cached:
            return cached

        response = await self._request(
            "POST",
            TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        self._raise_for_status(response)
        access_token = response.json().get("access_token")
        if not access_token:
            msg = "Token endpoint returned no access_token"
            raise SearchConsoleError(msg, response.status_code)

        self._access_tokens[refresh_token] = access_token
        return access_token

    def _client(self) -> httpx.AsyncClient:
        # Opened on first call; a client that never calls Google never opens a pool.
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:  # noqa: ANN401
        """Send a request, retrying 429/5xx and transport errors on the backoff schedule."""
        attempts = len(self.retry_delays) + 1
        for attempt in range(attempts):
            try:
                response = await self._client().request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt == attempts - 1:
                    msg = f"Search Console request failed: {e}"
                    raise SearchConsoleError(msg) from e
                delay = self.retry_delays[attempt]
                logger.warning("gsc_request_retry", url=url, attempt=attempt + 1, delay=delay, error=str(e))
                await asyncio.sleep(delay)
                continue

            if response.status_code in RETRYABLE_STATUS and attempt < attempts - 1:
                delay = self.retry_delays[attempt]
                logger.warning(
                    "gsc_request_retry", url=url, attempt=attempt + 1, delay=delay, status=response.status_code
                )
                await asyncio.sleep(delay)
                continue

            return response

        msg = "Search Console request retries exhausted"
        raise SearchConsoleError(msg)

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            payload = response.json()
            error = payload.get("error")
            detail = error.get("message") if isinstance(error, dict) else error or payload.get("error_description")
        except ValueError:
            detail = None
        detail = detail or response.text[:200] or response.reason_phrase
        msg = f"Search Console request failed ({response.status_code}): {detail}"
        raise SearchConsoleError(msg, response.status_code)
