"""Shared FastAPI dependencies for outbound Google collaborators."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.google_oauth import GoogleOAuthClient
from seodesk.config import get_settings
from seodesk.database import get_session
from seodesk.gsc.client import SearchConsoleClient
from seodesk.sites.discovery import SiteReconciler


def build_search_console() -> SearchConsoleClient:
    """Search Console client configured from settings (caller closes it)."""
    settings = get_settings()
    return SearchConsoleClient(
        settings.google_client_id,
        settings.google_client_secret,
        retry_delays=settings.gsc_retry_delays,
        page_size=settings.gsc_page_size,
        timeout=settings.gsc_timeout_seconds,
    )


async def get_search_console() -> AsyncGenerator[SearchConsoleClient, None]:
    """Yield a request-scoped Search Console client."""
    client = build_search_console()
    try:
        yield client
    finally:
        await client.aclose()


async def get_google_oauth() -> AsyncGenerator[GoogleOAuthClient, None]:
    """Yield a request-scoped Google OAuth client."""
    settings = get_settings()
    client = GoogleOAuthClient(
        settings.google_client_id,
        settings.google_client_secret,
        settings.google_redirect_uri,
    )
    try:
        yield client
    finally:
        await client.aclose()


async def get_site_reconciler(
    db: AsyncSession = Depends(get_session),
    gsc: SearchConsoleClient = Depends(get_search_console),
) -> SiteReconciler | None:
    """Reconciler for on-demand discovery, or None when Google credentials are not configured."""
    if not get_settings().google_configured:
        return None
    return SiteReconciler(db, gsc)
