"""Current-user endpoints: plan info and dashboard preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.dependencies import get_current_user
from seodesk.auth.router import user_info
from seodesk.database import get_session
from seodesk.db.models import User, UserPreference
from seodesk.users.schemas import PreferencesResponse, PreferencesUpdate, UserInfoResponse
from seodesk.users.service import (
    active_promotions,
    default_preferences,
    get_preferences,
    split_metrics,
    update_preferences,
)

router = APIRouter(prefix="/api/user", tags=["Users"])


def _preferences_response(prefs: UserPreference) -> PreferencesResponse:
    return PreferencesResponse(
        selected_metrics=split_metrics(prefs.selected_metrics),
        last_range_preset=prefs.last_range_preset,
        last_group_id=prefs.last_group_id,
        last_tag_id=prefs.last_tag_id,
    )


@router.get("", response_model=UserInfoResponse)
async def get_user_info(user: User = Depends(get_current_user)) -> UserInfoResponse:
    """Profile, plan and active promotions."""
    return UserInfoResponse(user=user_info(user), promotions=active_promotions(user.plan))


@router.get("/preferences", response_model=PreferencesResponse)
async def get_user_preferences(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PreferencesResponse:
    """Stored preferences, or the defaults when nothing was saved yet."""
    prefs = await get_preferences(db, user.id)
    return _preferences_response(prefs or default_preferences(user.id))


@router.put("/preferences", response_model=PreferencesResponse)
async def put_user_preferences(
    body: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PreferencesResponse:
    prefs = await update_preferences(db, user.id, body.model_dump(exclude_unset=True))
    await db.commit()
    return _preferences_response(prefs)
