"""Default categories and voting period for a fresh install."""

from __future__ import annotations

from datetime import timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.db.dialect import dialect_insert
from isekai.db.models import Category, VotingPeriod
from isekai.timeutils import utcnow

logger = structlog.get_logger()

CATEGORY_SEED_DATA: list[dict] = [
    {"name": "Best Action", "slug": "best-action", "element": "fire",
     "description": "Heart-pounding battles and adrenaline-fueled sequences", "order": 1},
    {"name": "Best Drama", "slug": "best-drama", "element": "water",
     "description": "Emotional stories that moved our souls", "order": 2},
    {"name": "Best Comedy", "slug": "best-comedy", "element": "light",
     "description": "Series that made us laugh out loud", "order": 3},
    {"name": "Best Romance", "slug": "best-romance", "element": "cosmos",
     "description": "Love stories that warmed our hearts", "order": 4},
    {"name": "Best Fantasy", "slug": "best-fantasy", "element": "nature",
     "description": "Magical worlds and impossible adventures", "order": 5},
    {"name": "Best Sci-Fi", "slug": "best-sci-fi", "element": "thunder",
     "description": "Futuristic visions and technological wonders", "order": 6},
    {"name": "Best Villain", "slug": "best-villain", "element": "shadow",
     "description": "Antagonists we loved to hate", "order": 7},
    {"name": "Best Slice of Life", "slug": "best-slice-of-life", "element": "wind",
     "description": "Quiet moments of everyday beauty", "order": 8},
]


async def seed_categories(db: AsyncSession) -> int:
    """Insert missing default categories; existing ones are left untouched."""
    for data in CATEGORY_SEED_DATA:
        stmt = dialect_insert(db, Category).values(is_active=True, created_at=utcnow(), **data)
        await db.execute(stmt.on_conflict_do_nothing(index_elements=["slug"]))
    await db.commit()
    logger.info("categories_seeded", count=len(CATEGORY_SEED_DATA))
    return len(CATEGORY_SEED_DATA)


async def seed_voting_period(db: AsyncSession, days: int) -> VotingPeriod | None:
    """Open a voting period of ``days`` days if none has ever been created."""
    existing = await db.execute(select(VotingPeriod.id).limit(1))
    if existing.scalar_one_or_none() is not None:
        return None

    now = utcnow()
    period = VotingPeriod(
        name=f"Isekai Awards {now.year}",
        description=f"The main voting period for Isekai Awards {now.year}",
        starts_at=now,
        ends_at=now + timedelta(days=days),
        is_active=True,
    )
    db.add(period)
    await db.commit()
    logger.info("voting_period_seeded", ends_at=period.ends_at.isoformat())
    return period
