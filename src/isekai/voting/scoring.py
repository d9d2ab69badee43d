"""Hidden-gem scoring.

A nominee is a hidden gem when its share of a category's votes is well below
the per-nominee average. ``compute_hidden_gem_score`` is pure; the tally
helpers below read live vote counts and feed it.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.db.models import Nominee, Vote

HIDDEN_GEM_THRESHOLD = 70
POPULARITY_CUTOFF = 1.5


def compute_hidden_gem_score(
    nominee_vote_count: int,
    total_votes_in_category: int,
    nominee_count_in_category: int,
) -> int:
    """Score in [0, 100]; higher means more under-appreciated.

    Zero when there is no data or the nominee has no votes, and zero once the
    nominee reaches 1.5x the category average.
    """
    if total_votes_in_category == 0 or nominee_count_in_category == 0 or nominee_vote_count == 0:
        return 0

    average_votes = total_votes_in_category / nominee_count_in_category
    vote_ratio = nominee_vote_count / average_votes
    if vote_ratio > POPULARITY_CUTOFF:
        return 0

    score = min(100.0, max(0.0, (1 - vote_ratio / POPULARITY_CUTOFF) * 100))
    # Half-up rounding, not banker's rounding.
    return math.floor(score + 0.5)


def is_hidden_gem(score: int, threshold: int = HIDDEN_GEM_THRESHOLD) -> bool:
    return score > threshold


@dataclass(frozen=True)
class NomineeTally:
    nominee_id: int
    category_id: int
    vote_count: int
    hidden_gem_score: int

    @property
    def is_hidden_gem(self) -> bool:
        return is_hidden_gem(self.hidden_gem_score)


async def _vote_counts(db: AsyncSession, category_id: int | None = None) -> list[tuple[int, int, int]]:
    """(nominee_id, category_id, vote_count) for every nominee, zero-vote nominees included."""
    stmt = (
        select(Nominee.id, Nominee.category_id, func.count(Vote.id))
        .outerjoin(Vote, Vote.nominee_id == Nominee.id)
        .group_by(Nominee.id, Nominee.category_id)
    )
    if category_id is not None:
        stmt = stmt.where(Nominee.category_id == category_id)
    result = await db.execute(stmt)
    return [(row[0], row[1], row[2]) for row in result.all()]


def _score_rows(rows: list[tuple[int, int, int]]) -> dict[int, NomineeTally]:
    by_category: dict[int, list[tuple[int, int]]] = defaultdict(list)
    for nominee_id, category_id, count in rows:
        by_category[category_id].append((nominee_id, count))

    tallies: dict[int, NomineeTally] = {}
    for category_id, entries in by_category.items():
        total = sum(count for _, count in entries)
        for nominee_id, count in entries:
            tallies[nominee_id] = NomineeTally(
                nominee_id=nominee_id,
                category_id=category_id,
                vote_count=count,
                hidden_gem_score=compute_hidden_gem_score(count, total, len(entries)),
            )
    return tallies


async def category_tallies(db: AsyncSession, category_id: int) -> dict[int, NomineeTally]:
    """Vote counts and hidden-gem scores for every nominee in one category."""
    return _score_rows(await _vote_counts(db, category_id))


async def nominee_tallies(db: AsyncSession) -> dict[int, NomineeTally]:
    """Vote counts and hidden-gem scores for every nominee, keyed by nominee id."""
    return _score_rows(await _vote_counts(db))
