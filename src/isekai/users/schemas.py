"""Pydantic models for user profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PrivacyMode = Literal["public", "private", "anonymous"]
OrbStyle = Literal["default", "crystal", "flame", "star", "moon"]
AuraSize = Literal["small", "medium", "large"]


class AffinityStat(BaseModel):
    category: str
    element: str
    votes: int
    percentage: int


class ProfileStats(BaseModel):
    total_votes: int
    total_achievements: int
    categories_voted: int
    affinity_stats: list[AffinityStat]


class SpiritFormResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    glow_color: str
    orb_style: str
    aura_size: str
    tail_count: int


class SpiritFormUpdate(BaseModel):
    glow_color: str | None = Field(None, pattern=r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
    orb_style: OrbStyle | None = None
    aura_size: AuraSize | None = None
    tail_count: int | None = Field(None, ge=1, le=9)


class ProfileResponse(BaseModel):
    id: int
    username: str
    email: str | None = None
    auth_provider: str
    summon_date: datetime
    last_seen: datetime | None = None
    role: str
    privacy_mode: str
    preferences: dict[str, Any] | None = None
    spirit_form: SpiritFormResponse | None = None
    stats: ProfileStats


class ProfileUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=64)
    privacy_mode: PrivacyMode | None = None
    preferences: dict[str, Any] | None = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: str
    privacy_mode: str
