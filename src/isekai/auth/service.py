"""
User identity helpers.

Provider sign-in is handled upstream; this module only creates guest users,
resolves users by id and records last-seen activity.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from isekai.db.models import User
from isekai.gamification.visits import record_visit
from isekai.timeutils import utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_ADJECTIVES = ("Wandering", "Mysterious", "Silent", "Ethereal", "Lost", "Drifting", "Hidden")
_NOUNS = ("Soul", "Spirit", "Wanderer", "Shadow", "Echo", "Dream", "Whisper")


def generate_guest_username() -> str:
    """Random ``AdjectiveNoun1234`` name for guest sessions."""
    adjective = secrets.choice(_ADJECTIVES)
    noun = secrets.choice(_NOUNS)
    return f"{adjective}{noun}{secrets.randbelow(9999)}"


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def create_guest_user(db: AsyncSession) -> User:
    """Create a guest user with a unique generated username."""
    username = generate_guest_username()
    while await get_user_by_username(db, username) is not None:
        username = generate_guest_username()

    now = utcnow()
    user = User(
        username=username,
        auth_provider="guest",
        summon_date=now,
        last_seen=now,
    )
    db.add(user)
    await db.flush()
    await record_visit(db, user.id, now.date())
    await db.commit()
    logger.info("guest_user_created", user_id=user.id, username=username)
    return user


async def touch_user(db: AsyncSession, user: User) -> None:
    """Refresh last-seen and record today's visit."""
    now = utcnow()
    user.last_seen = now
    await record_visit(db, user.id, now.date())
    await db.commit()
