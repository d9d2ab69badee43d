"""Pydantic request/response models for vote endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CastVoteRequest(BaseModel):
    nominee_id: int
    category_id: int


class VoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    nominee_id: int
    category_id: int
    bound_at: datetime
    updated_at: datetime


class CastVoteResponse(BaseModel):
    vote: VoteResponse
    is_update: bool
    is_hidden_gem: bool
    achievements_unlocked: list[str] = []


class VoteCategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    element: str


class VoteNomineeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    image_url: str
    category: VoteCategorySummary


class UserVoteResponse(VoteResponse):
    nominee: VoteNomineeSummary
