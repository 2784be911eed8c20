"""Response schemas for authentication endpoints."""

from __future__ import annotations

import uuid

from pydantic import BaseModel


class UserInfo(BaseModel):
    """The signed-in user as shown in the dashboard header."""

    id: uuid.UUID
    email: str
    name: str
    avatar: str | None = None
    plan: str


class MeResponse(BaseModel):
    user: UserInfo
