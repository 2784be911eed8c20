"""Tag endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.dependencies import get_current_user
from seodesk.database import get_session
from seodesk.db.models import User
from seodesk.tags.schemas import TagRequest, TagResponse
from seodesk.tags.service import create_tag, delete_tag, list_tags, rename_tag

router = APIRouter(prefix="/api/tags", tags=["Tags"])


@router.get("", response_model=list[TagResponse])
async def get_tags(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[TagResponse]:
    return [TagResponse.model_validate(tag) for tag in await list_tags(db, user.id)]


@router.post("", response_model=TagResponse, status_code=201)
async def add_tag(
    body: TagRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TagResponse:
    try:
        tag = await create_tag(db, user.id, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return TagResponse.model_validate(tag)


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: uuid.UUID,
    body: TagRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TagResponse:
    """Rename a user tag. The system tag cannot be renamed."""
    try:
        tag = await rename_tag(db, user.id, tag_id, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    await db.commit()
    return TagResponse.model_validate(tag)


@router.delete("/{tag_id}", status_code=204)
async def remove_tag(
    tag_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Delete a tag and unlink it from every site."""
    try:
        deleted = await delete_tag(db, user.id, tag_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Tag not found")
    await db.commit()
    return Response(status_code=204)
