"""Aggregate voting statistics for administrators."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.admin.schemas import (
    AdminStatsResponse,
    CategoryVoteCount,
    NomineeStat,
    StatsTotals,
)
from isekai.db.models import Category, Nominee, User, Vote
from isekai.voting.scoring import is_hidden_gem, nominee_tallies

TOP_NOMINEES_LIMIT = 10


async def _count(db: AsyncSession, column: Any) -> int:
    return (await db.execute(select(func.count(column)))).scalar_one()


async def get_stats(db: AsyncSession, top_limit: int = TOP_NOMINEES_LIMIT) -> AdminStatsResponse:
    totals = StatsTotals(
        users=await _count(db, User.id),
        votes=await _count(db, Vote.id),
        categories=await _count(db, Category.id),
        nominees=await _count(db, Nominee.id),
    )

    by_category = await db.execute(
        select(Category.id, Category.name, func.count(Vote.id))
        .outerjoin(Vote, Vote.category_id == Category.id)
        .group_by(Category.id, Category.name)
        .order_by(Category.order, Category.id)
    )
    votes_by_category = [
        CategoryVoteCount(category_id=cid, name=name, vote_count=count)
        for cid, name, count in by_category.all()
    ]

    nominees = await db.execute(
        select(Nominee.id, Nominee.title, Nominee.category_id, Category.name)
        .join(Category, Category.id == Nominee.category_id)
    )
    tallies = await nominee_tallies(db)
    stats = [
        NomineeStat(
            nominee_id=nid,
            title=title,
            category_id=cid,
            category_name=cname,
            vote_count=tallies[nid].vote_count if nid in tallies else 0,
            hidden_gem_score=tallies[nid].hidden_gem_score if nid in tallies else 0,
        )
        for nid, title, cid, cname in nominees.all()
    ]

    top = sorted(stats, key=lambda s: (-s.vote_count, s.nominee_id))[:top_limit]
    gems = sorted(
        (s for s in stats if is_hidden_gem(s.hidden_gem_score)),
        key=lambda s: (-s.hidden_gem_score, s.nominee_id),
    )

    return AdminStatsResponse(
        totals=totals,
        votes_by_category=votes_by_category,
        top_nominees=top,
        hidden_gems=gems,
    )
