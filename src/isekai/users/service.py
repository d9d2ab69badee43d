"""User profile and spirit form business logic."""

from __future__ import annotations

from collections import Counter

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.db.dialect import dialect_insert
from isekai.db.models import Category, SpiritForm, User, UserAchievement, Vote
from isekai.errors import ConflictError
from isekai.users.schemas import AffinityStat, ProfileStats, ProfileUpdate, SpiritFormUpdate

logger = structlog.get_logger()

DEFAULT_SPIRIT_FORM = {
    "glow_color": "#ff69b4",
    "orb_style": "default",
    "aura_size": "medium",
    "tail_count": 3,
}


async def get_profile_stats(db: AsyncSession, user_id: int) -> ProfileStats:
    """Vote totals plus the per-category affinity breakdown."""
    rows = (
        await db.execute(
            select(Category.id, Category.name, Category.element)
            .join(Vote, Vote.category_id == Category.id)
            .where(Vote.user_id == user_id)
        )
    ).all()
    achievements = (
        await db.execute(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user_id)
        )
    ).scalar_one()

    total = len(rows)
    counts = Counter((name, element) for _, name, element in rows)
    affinity = [
        AffinityStat(
            category=name,
            element=element,
            votes=count,
            percentage=round(count / total * 100),
        )
        for (name, element), count in counts.most_common()
    ]
    return ProfileStats(
        total_votes=total,
        total_achievements=achievements,
        categories_voted=len({category_id for category_id, _, _ in rows}),
        affinity_stats=affinity,
    )


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
    """Apply profile edits. Raises ConflictError when the username is taken."""
    if data.username is not None and data.username != user.username:
        taken = await db.execute(
            select(User.id).where(User.username == data.username, User.id != user.id)
        )
        if taken.scalar_one_or_none() is not None:
            raise ConflictError("Username already taken")
        user.username = data.username

    if data.privacy_mode is not None:
        user.privacy_mode = data.privacy_mode
    if data.preferences is not None:
        user.preferences = data.preferences

    try:
        await db.commit()
    except IntegrityError as exc:
        # Another rename to the same name committed between the check and here.
        await db.rollback()
        raise ConflictError("Username already taken") from exc
    logger.info("profile_updated", user_id=user.id)
    return user


async def get_spirit_form(db: AsyncSession, user_id: int) -> SpiritForm | None:
    result = await db.execute(select(SpiritForm).where(SpiritForm.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_spirit_form(db: AsyncSession, user_id: int) -> SpiritForm:
    """Return the user's spirit form, creating the default one on first access."""
    form = await get_spirit_form(db, user_id)
    if form is not None:
        return form

    stmt = dialect_insert(db, SpiritForm).values(user_id=user_id, **DEFAULT_SPIRIT_FORM)
    # A concurrent first read may have created it already.
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))
    await db.commit()
    result = await db.execute(select(SpiritForm).where(SpiritForm.user_id == user_id))
    return result.scalar_one()


async def update_spirit_form(db: AsyncSession, user_id: int, data: SpiritFormUpdate) -> SpiritForm:
    form = await get_or_create_spirit_form(db, user_id)
    for field_name, value in data.model_dump(exclude_none=True).items():
        setattr(form, field_name, value)
    await db.commit()
    return form
