"""User info and preference schemas."""

from __future__ import annotations

import uuid

from seodesk.auth.schemas import UserInfo
from seodesk.common.schemas import CamelModel
from seodesk.db.models import DEFAULT_RANGE_PRESET


class UserInfoResponse(CamelModel):
    user: UserInfo
    promotions: list[str] = []


class PreferencesResponse(CamelModel):
    selected_metrics: list[str]
    last_range_preset: str = DEFAULT_RANGE_PRESET
    last_group_id: uuid.UUID | None = None
    last_tag_id: uuid.UUID | None = None


class PreferencesUpdate(CamelModel):
    """Partial update. Omitted fields are left unchanged; ``null`` group or tag clears it."""

    selected_metrics: list[str] | None = None
    last_range_preset: str | None = None
    last_group_id: uuid.UUID | None = None
    last_tag_id: uuid.UUID | None = None
