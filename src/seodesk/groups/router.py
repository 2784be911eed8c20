"""Group endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from seodesk.auth.dependencies import get_current_user
from seodesk.database import get_session
from seodesk.db.models import Group, User
from seodesk.groups.schemas import GroupRequest, GroupResponse
from seodesk.groups.service import create_group, delete_group, list_groups, rename_group

router = APIRouter(prefix="/api/groups", tags=["Groups"])

ALL_GROUPS = GroupResponse(id=None, display_name="All", email_owner="", is_default=True)


def _group_response(group: Group) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        display_name=group.display_name,
        email_owner=group.email_owner,
        is_default=group.is_default,
    )


@router.get("", response_model=list[GroupResponse])
async def get_groups(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[GroupResponse]:
    """The virtual "All" entry followed by the user's groups."""
    groups = await list_groups(db, user.id)
    return [ALL_GROUPS, *(_group_response(g) for g in groups)]


@router.post("", response_model=GroupResponse, status_code=201)
async def add_group(
    body: GroupRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GroupResponse:
    try:
        group = await create_group(db, user, body.display_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _group_response(group)


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: uuid.UUID,
    body: GroupRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GroupResponse:
    """Rename a group. The default group cannot be renamed."""
    try:
        group = await rename_group(db, user.id, group_id, body.display_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    await db.commit()
    return _group_response(group)


@router.delete("/{group_id}", status_code=204)
async def remove_group(
    group_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Delete a group. Its sites are detached, never deleted."""
    try:
        deleted = await delete_group(db, user.id, group_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not deleted:
        raise HTTPException(status_code=404, detail="Group not found")
    await db.commit()
    return Response(status_code=204)
