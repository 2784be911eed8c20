"""
User provisioning for Google sign-in.

A first login creates the user together with the default group, the system
"All" tag and a preference record. Later logins refresh the profile.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from seodesk.db.models import (
    DEFAULT_RANGE_PRESET,
    DEFAULT_SELECTED_METRICS,
    Group,
    PlanType,
    Tag,
    User,
    UserPreference,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from seodesk.auth.google_oauth import GoogleProfile

logger = structlog.get_logger()

DEFAULT_GROUP_NAME = "My sites"
SYSTEM_TAG_NAME = "All"


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_google_id(db: AsyncSession, google_id: str) -> User | None:
    """Fetch a user by Google subject id."""
    result = await db.execute(select(User).where(User.google_id == google_id))
    return result.scalar_one_or_none()


async def upsert_google_user(db: AsyncSession, profile: GoogleProfile) -> tuple[User, bool]:
    """
    Create or refresh the user for a completed Google sign-in.

    The refresh token is only overwritten when Google supplied a new one;
    Google does not reissue it on every consent.

    Returns:
        Tuple of (user, created). The caller commits.
    """
    now = datetime.now(timezone.utc)
    user = await get_user_by_google_id(db, profile.google_id)

    if user is None:
        user = User(
            id=uuid.uuid4(),
            google_id=profile.google_id,
            email=profile.email,
            name=profile.name or profile.email,
            picture=profile.picture,
            google_refresh_token=profile.refresh_token or "",
            plan=PlanType.TRIAL,
            created_at=now,
            updated_at=now,
            last_login_at=now,
        )
        db.add(user)
        db.add(
            Group(
                user_id=user.id,
                display_name=DEFAULT_GROUP_NAME,
                email_owner=profile.email,
                is_default=True,
                created_at=now,
            )
        )
        db.add(Tag(user_id=user.id, name=SYSTEM_TAG_NAME, is_deletable=False, created_at=now))
        db.add(
            UserPreference(
                user_id=user.id,
                selected_metrics=DEFAULT_SELECTED_METRICS,
                last_range_preset=DEFAULT_RANGE_PRESET,
                updated_at=now,
            )
        )
        await db.flush()
        logger.info("user_created", user_id=str(user.id), email=profile.email)
        return user, True

    user.last_login_at = now
    user.updated_at = now
    user.name = profile.name or user.name
    user.picture = profile.picture or user.picture
    if profile.refresh_token:
        user.google_refresh_token = profile.refresh_token
    await db.flush()
    logger.info("user_login", user_id=str(user.id), refresh_token_rotated=bool(profile.refresh_token))
    return user, False
