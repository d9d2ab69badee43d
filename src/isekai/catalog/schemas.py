"""Pydantic models for category and nominee endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Element = Literal["fire", "water", "shadow", "light", "nature", "thunder", "ice", "wind", "earth", "cosmos"]


# --- Category ---


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    slug: str = Field(min_length=1, max_length=128, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    element: Element
    description: str | None = None
    order: int = 0


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    element: str
    description: str | None = None
    order: int
    is_active: bool


class CategoryListItem(CategoryResponse):
    nominee_count: int = 0
    user_voted: bool = False
    user_vote_nominee_id: int | None = None


# --- Nominee ---


class NomineeCreate(BaseModel):
    category_id: int
    title: str = Field(min_length=1, max_length=256)
    image_url: str = Field(min_length=1)
    studio: str | None = None
    manga_art_url: str | None = None
    description: str | None = None


class NomineeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    title: str
    studio: str | None = None
    image_url: str
    manga_art_url: str | None = None
    description: str | None = None
    created_at: datetime


class NomineeCategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    element: str


class NomineeListItem(NomineeResponse):
    category: NomineeCategorySummary
    vote_count: int = 0
    hidden_gem_score: int = 0
    user_voted: bool = False


# --- Voting period ---


class VotingPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    starts_at: datetime
    ends_at: datetime
    is_active: bool
