"""User info and dashboard preferences."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from seodesk.db.models import DEFAULT_RANGE_PRESET, DEFAULT_SELECTED_METRICS, PlanType, UserPreference

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TRIAL_PROMOTIONS = ["-20% annual"]

_PREFERENCE_FIELDS = {"selected_metrics", "last_range_preset", "last_group_id", "last_tag_id"}


def active_promotions(plan: PlanType) -> list[str]:
    """Promotions shown to a user on ``plan``."""
    return list(TRIAL_PROMOTIONS) if plan is PlanType.TRIAL else []


def split_metrics(selected: str) -> list[str]:
    return [m for m in selected.split(",") if m]


async def get_preferences(db: AsyncSession, user_id: uuid.UUID) -> UserPreference | None:
    result = await db.execute(select(UserPreference).where(UserPreference.user_id == user_id))
    return result.scalar_one_or_none()


def default_preferences(user_id: uuid.UUID) -> UserPreference:
    """Unsaved preference record carrying the defaults."""
    return UserPreference(
        user_id=user_id,
        selected_metrics=DEFAULT_SELECTED_METRICS,
        last_range_preset=DEFAULT_RANGE_PRESET,
        last_group_id=None,
        last_tag_id=None,
    )


async def update_preferences(db: AsyncSession, user_id: uuid.UUID, updates: dict[str, Any]) -> UserPreference:
    """
    Apply a partial update, creating the record on first write.

    Only keys present in ``updates`` change. ``selected_metrics`` is a list
    and is stored comma-separated.
    """
    prefs = await get_preferences(db, user_id)
    if prefs is None:
        prefs = default_preferences(user_id)
        db.add(prefs)

    for key, value in updates.items():
        if key not in _PREFERENCE_FIELDS:
            continue
        if key == "selected_metrics":
            value = ",".join(m.strip() for m in value or [] if m.strip())
        elif key == "last_range_preset" and value is None:
            continue
        setattr(prefs, key, value)

    prefs.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.debug("preferences_updated", user_id=str(user_id), fields=sorted(updates))
    return prefs
