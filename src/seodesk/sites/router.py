"""Site endpoints: discovery, tagging, favorites, sync and export.

``{site_ref}`` accepts either the site's UUID or its Search Console
property id.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.dependencies import get_current_user
from seodesk.common.result import http_status
from seodesk.database import get_session
from seodesk.db.models import Site, User
from seodesk.dependencies import get_search_console
from seodesk.gsc.client import SearchConsole
from seodesk.sites.discovery import SiteReconciler
from seodesk.sites.export import render_csv
from seodesk.sites.schemas import DiscoverResponse, FavoriteRequest, SiteTagsRequest, SyncRequest, SyncResponse
from seodesk.sites.service import export_points, resolve_site, set_favorite, update_site_tags
from seodesk.sites.sync import SyncReconciler

router = APIRouter(prefix="/api/sites", tags=["Sites"])


async def _site_or_404(db: AsyncSession, user: User, site_ref: str) -> Site:
    site = await resolve_site(db, user.id, site_ref)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return site


@router.post("/discover", response_model=DiscoverResponse)
async def discover_sites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    gsc: SearchConsole = Depends(get_search_console),
) -> DiscoverResponse:
    """Add Search Console properties not yet known for this user."""
    result = await SiteReconciler(db, gsc).discover(user.id)
    if not result.ok:
        raise HTTPException(status_code=http_status(result), detail=result.error)
    return DiscoverResponse(newly_added=result.value or 0)


@router.put("/{site_ref:path}/tags", status_code=204)
async def put_site_tags(
    site_ref: str,
    body: SiteTagsRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Replace the site's tags. Every tag must belong to the user."""
    site = await _site_or_404(db, user, site_ref)
    try:
        await update_site_tags(db, site, body.tag_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return Response(status_code=204)


@router.put("/{site_ref:path}/favorite", status_code=204)
async def put_favorite(
    site_ref: str,
    body: FavoriteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    site = await _site_or_404(db, user, site_ref)
    await set_favorite(db, site, body.is_favorite)
    await db.commit()
    return Response(status_code=204)


@router.post("/{site_ref:path}/sync", response_model=SyncResponse)
async def sync_site(
    site_ref: str,
    body: SyncRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    gsc: SearchConsole = Depends(get_search_console),
) -> SyncResponse:
    """Pull daily metrics for the requested range from Search Console."""
    site = await _site_or_404(db, user, site_ref)
    result = await SyncReconciler(db, gsc).sync_site(user.id, site.id, body.start_date, body.end_date)
    if not result.ok:
        raise HTTPException(status_code=http_status(result), detail=result.error)
    return SyncResponse(success=True, rows_written=result.value or 0)


@router.get("/{site_ref:path}/export")
async def export_site(
    site_ref: str,
    date_from: date = Query(..., alias="dateFrom"),
    date_to: date = Query(..., alias="dateTo"),
    export_format: str = Query("csv", alias="format"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Daily metrics for one site as a CSV download."""
    site = await _site_or_404(db, user, site_ref)
    if export_format.lower() != "csv":
        raise HTTPException(status_code=400, detail="Unsupported format")

    points = await export_points(db, site.id, date_from, date_to)
    return Response(
        content=render_csv(points),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="site-export-{site.id}.csv"'},
    )
