"""Site groups: listing, creation, rename and deletion."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from seodesk.db.models import Group, Site

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from seodesk.db.models import User

logger = structlog.get_logger()

MAX_GROUP_NAME_LENGTH = 40


def validate_group_name(name: str | None) -> str:
    """
    Trim and validate a group name.

    Raises:
        ValueError: If the name is empty or longer than 40 characters.
    """
    name = (name or "").strip()
    if not name:
        msg = "Group name is required"
        raise ValueError(msg)
    if len(name) > MAX_GROUP_NAME_LENGTH:
        msg = f"Group name must be {MAX_GROUP_NAME_LENGTH} characters or less"
        raise ValueError(msg)
    return name


async def list_groups(db: AsyncSession, user_id: uuid.UUID) -> list[Group]:
    """The user's groups, default first, then by creation."""
    result = await db.execute(
        select(Group).where(Group.user_id == user_id).order_by(Group.is_default.desc(), Group.created_at)
    )
    return list(result.scalars())


async def get_group(db: AsyncSession, user_id: uuid.UUID, group_id: uuid.UUID) -> Group | None:
    result = await db.execute(select(Group).where(Group.id == group_id, Group.user_id == user_id))
    return result.scalar_one_or_none()


async def create_group(db: AsyncSession, user: User, name: str) -> Group:
    """Create a non-default group owned by ``user``."""
    group = Group(
        user_id=user.id,
        display_name=validate_group_name(name),
        email_owner=user.email,
        is_default=False,
    )
    db.add(group)
    await db.flush()
    logger.info("group_created", user_id=str(user.id), group_id=str(group.id))
    return group


async def rename_group(db: AsyncSession, user_id: uuid.UUID, group_id: uuid.UUID, name: str) -> Group | None:
    """
    Rename a group. Returns None when the group does not exist for this user.

    Raises:
        ValueError: If the name is invalid or the group is the default group.
    """
    name = validate_group_name(name)
    group = await get_group(db, user_id, group_id)
    if group is None:
        return None
    if group.is_default:
        msg = "Cannot rename default group"
        raise ValueError(msg)
    group.display_name = name
    await db.flush()
    return group


async def delete_group(db: AsyncSession, user_id: uuid.UUID, group_id: uuid.UUID) -> bool:
    """
    Delete a group and detach its sites. Returns False when the group does not exist.

    Raises:
        ValueError: If the group is the default group.
    """
    group = await get_group(db, user_id, group_id)
    if group is None:
        return False
    if group.is_default:
        msg = "Cannot delete default group"
        raise ValueError(msg)

    # Detach explicitly; SET NULL is not enforced on every backend.
    await db.execute(update(Site).where(Site.group_id == group_id).values(group_id=None))
    await db.delete(group)
    await db.flush()
    logger.info("group_deleted", user_id=str(user_id), group_id=str(group_id))
    return True
