"""Dashboard endpoint."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.dependencies import get_current_user
from seodesk.common.result import http_status
from seodesk.config import get_settings
from seodesk.dashboard.schemas import DashboardResponse
from seodesk.dashboard.service import DashboardComposer, DashboardQuery, SortDirection, SortField
from seodesk.database import get_session
from seodesk.db.models import User
from seodesk.dependencies import get_site_reconciler
from seodesk.sites.discovery import SiteReconciler

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    group_id: uuid.UUID | None = Query(None, alias="groupId"),
    tag_id: uuid.UUID | None = Query(None, alias="tagId"),
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
    compare_from: date | None = Query(None, alias="compareFrom"),
    compare_to: date | None = Query(None, alias="compareTo"),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_dir: str | None = Query(None, alias="sortDir"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    reconciler: SiteReconciler | None = Depends(get_site_reconciler),
) -> DashboardResponse:
    """Totals, per-date series and sorted site list for the user's sites in a date window.

    Defaults to the last 28 days ending today (UTC), sorted by clicks descending.
    """
    date_to = date_to or datetime.now(timezone.utc).date()
    date_from = date_from or date_to - timedelta(days=get_settings().default_range_days)
    if date_from > date_to:
        raise HTTPException(status_code=400, detail="dateFrom must not be after dateTo")

    query = DashboardQuery(
        user_id=user.id,
        date_from=date_from,
        date_to=date_to,
        group_id=group_id,
        tag_id=tag_id,
        sort_by=SortField.parse(sort_by),
        sort_dir=SortDirection.parse(sort_dir),
        compare_from=compare_from,
        compare_to=compare_to,
    )
    result = await DashboardComposer(db, reconciler).compose(query)
    if not result.ok:
        raise HTTPException(status_code=http_status(result), detail=result.error)
    return DashboardResponse.model_validate(result.value)
