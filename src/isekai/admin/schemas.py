"""Admin dashboard response models."""

from __future__ import annotations

from pydantic import BaseModel


class CategoryVoteCount(BaseModel):
    category_id: int
    name: str
    vote_count: int


class NomineeStat(BaseModel):
    nominee_id: int
    title: str
    category_id: int
    category_name: str
    vote_count: int
    hidden_gem_score: int


class StatsTotals(BaseModel):
    users: int
    votes: int
    categories: int
    nominees: int


class AdminStatsResponse(BaseModel):
    totals: StatsTotals
    votes_by_category: list[CategoryVoteCount]
    top_nominees: list[NomineeStat]
    hidden_gems: list[NomineeStat]
