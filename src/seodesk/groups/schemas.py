"""Group request/response schemas."""

from __future__ import annotations

import uuid

from seodesk.common.schemas import CamelModel


class GroupRequest(CamelModel):
    display_name: str


class GroupResponse(CamelModel):
    """A group. The virtual "All" entry has ``id = null``."""

    id: uuid.UUID | None
    display_name: str
    email_owner: str = ""
    is_default: bool = False
