"""Pydantic response models for achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    name: str
    description: str
    icon: str
    rarity: str
    total_earned: int = 0


class EarnedAchievementResponse(BaseModel):
    slug: str
    name: str
    description: str
    icon: str
    rarity: str
    earned_at: datetime


class UserAchievementsResponse(BaseModel):
    earned: list[EarnedAchievementResponse]
    total_available: int
    total_earned: int


class AchievementCheckResponse(BaseModel):
    granted: list[str]
