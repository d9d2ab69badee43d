"""Pydantic models for announcement endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AnnouncementType = Literal["info", "warning", "celebration", "urgent"]


class AnnouncementCreate(BaseModel):
    message: str = Field(min_length=1)
    type: AnnouncementType = "info"
    expires_at: datetime | None = None
    is_global: bool = True
    emotion: str | None = None


class AnnouncementDismiss(BaseModel):
    announcement_id: int


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    message: str
    type: str
    created_by: int | None = None
    created_at: datetime
    expires_at: datetime | None = None
    is_global: bool
