"""Tag request/response schemas."""

from __future__ import annotations

import uuid

from seodesk.common.schemas import CamelModel


class TagRequest(CamelModel):
    name: str


class TagResponse(CamelModel):
    id: uuid.UUID
    name: str
    is_deletable: bool
