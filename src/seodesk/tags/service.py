"""User-scoped tags.

Names are trimmed, at most 30 characters and unique per user (case
sensitive). The system tag cannot be renamed or deleted.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select

from seodesk.db.models import SiteTag, Tag

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

MAX_TAG_NAME_LENGTH = 30


def validate_tag_name(name: str | None) -> str:
    """
    Trim and validate a tag name.

    Raises:
        ValueError: If the name is empty or too long.
    """
    name = (name or "").strip()
    if not name:
        msg = "Tag name is required"
        raise ValueError(msg)
    if len(name) > MAX_TAG_NAME_LENGTH:
        msg = f"Tag name must be {MAX_TAG_NAME_LENGTH} characters or less"
        raise ValueError(msg)
    return name


async def _name_taken(db: AsyncSession, user_id: uuid.UUID, name: str, exclude_id: uuid.UUID | None = None) -> bool:
    stmt = select(Tag.id).where(Tag.user_id == user_id, Tag.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Tag.id != exclude_id)
    return (await db.execute(stmt.limit(1))).first() is not None


async def list_tags(db: AsyncSession, user_id: uuid.UUID) -> list[Tag]:
    """The user's tags in creation order."""
    result = await db.execute(select(Tag).where(Tag.user_id == user_id).order_by(Tag.created_at, Tag.name))
    return list(result.scalars())


async def get_tag(db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.id == tag_id, Tag.user_id == user_id))
    return result.scalar_one_or_none()


async def create_tag(db: AsyncSession, user_id: uuid.UUID, name: str) -> Tag:
    """
    Create a deletable tag.

    Raises:
        ValueError: If the name is invalid or already used by this user.
    """
    name = validate_tag_name(name)
    if await _name_taken(db, user_id, name):
        msg = "Tag with this name already exists"
        raise ValueError(msg)

    tag = Tag(user_id=user_id, name=name, is_deletable=True)
    db.add(tag)
    await db.flush()
    logger.info("tag_created", user_id=str(user_id), tag_id=str(tag.id))
    return tag


async def rename_tag(db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID, name: str) -> Tag | None:
    """
    Rename a tag. Returns None when the tag does not exist for this user.

    Raises:
        ValueError: If the name is invalid, taken, or the tag is the system tag.
    """
    name = validate_tag_name(name)
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        return None
    if not tag.is_deletable:
        msg = "Cannot rename system tag"
        raise ValueError(msg)
    if await _name_taken(db, user_id, name, exclude_id=tag_id):
        msg = "Tag with this name already exists"
        raise ValueError(msg)

    tag.name = name
    await db.flush()
    return tag


async def delete_tag(db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
    """
    Delete a tag together with its site links. Returns False when the tag does not exist.

    Raises:
        ValueError: If the tag is the system tag.
    """
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        return False
    if not tag.is_deletable:
        msg = "Cannot delete system tag"
        raise ValueError(msg)

    await db.execute(delete(SiteTag).where(SiteTag.tag_id == tag_id))
    await db.delete(tag)
    await db.flush()
    logger.info("tag_deleted", user_id=str(user_id), tag_id=str(tag_id))
    return True
