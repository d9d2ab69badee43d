"""The six unlockable achievements and their idempotent seeding."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.db.dialect import dialect_insert
from isekai.db.models import Achievement

logger = structlog.get_logger()

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "slug": "first-vote",
        "name": "First Binding",
        "description": "Cast your first vote in the realm",
        "icon": "\U0001f4ab",
        "rarity": "common",
        "condition": "first_vote",
    },
    {
        "slug": "hidden-gem-hunter",
        "name": "Hidden Gem Hunter",
        "description": "Vote for 3 hidden gems (high quality, low votes)",
        "icon": "\U0001f48e",
        "rarity": "rare",
        "condition": "hidden_gem_hunter",
    },
    {
        "slug": "completionist",
        "name": "Completionist",
        "description": "Vote in all categories",
        "icon": "\U0001f3c6",
        "rarity": "epic",
        "condition": "completionist",
    },
    {
        "slug": "early-soul",
        "name": "Early Soul",
        "description": "Vote within 24 hours of joining the realm",
        "icon": "⚡",
        "rarity": "rare",
        "condition": "early_soul",
    },
    {
        "slug": "loyal-spirit",
        "name": "Loyal Spirit",
        "description": "Return to the realm for 3 consecutive days",
        "icon": "\U0001f525",
        "rarity": "epic",
        "condition": "loyal_spirit",
    },
    {
        "slug": "dedicated-voter",
        "name": "Dedicated Voter",
        "description": "Cast 10 or more votes",
        "icon": "⭐",
        "rarity": "legendary",
        "condition": "dedicated_voter",
    },
]


async def seed_achievements(db: AsyncSession) -> int:
    """Upsert all achievement definitions. Returns number of achievements seeded."""
    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        stmt = dialect_insert(db, Achievement).values(**data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["slug"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "icon": stmt.excluded.icon,
                "rarity": stmt.excluded.rarity,
                "condition": stmt.excluded.condition,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("achievements_seeded", count=seeded)
    return seeded
