"""Site request/response schemas."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import model_validator

from seodesk.common.schemas import CamelModel


class DiscoverResponse(CamelModel):
    newly_added: int


class SiteTagsRequest(CamelModel):
    tag_ids: list[uuid.UUID] = []


class FavoriteRequest(CamelModel):
    is_favorite: bool


class SyncRequest(CamelModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self) -> SyncRequest:
        if self.start_date > self.end_date:
            msg = "startDate must not be after endDate"
            raise ValueError(msg)
        return self


class SyncResponse(CamelModel):
    success: bool
    rows_written: int
