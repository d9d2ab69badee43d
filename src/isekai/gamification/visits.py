"""Daily visit tracking, feeding the consecutive-day streak used by loyal_spirit."""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.db.dialect import dialect_insert
from isekai.db.models import UserVisit


async def record_visit(db: AsyncSession, user_id: int, day: date) -> None:
    """Record that the user was seen on ``day``. Repeat calls are no-ops."""
    stmt = dialect_insert(db, UserVisit).values(user_id=user_id, visit_date=day)
    stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "visit_date"])
    await db.execute(stmt)


async def consecutive_days(db: AsyncSession, user_id: int, today: date) -> int:
    """Length of the unbroken run of visit days ending at ``today`` (or yesterday).

    A streak that ended yesterday still counts until the user misses a full day.
    """
    result = await db.execute(
        select(UserVisit.visit_date)
        .where(UserVisit.user_id == user_id, UserVisit.visit_date <= today)
        .order_by(UserVisit.visit_date.desc())
    )
    days = list(result.scalars())
    if not days:
        return 0

    expected = days[0]
    if expected < today - timedelta(days=1):
        return 0

    streak = 0
    for day in days:
        if day != expected:
            break
        streak += 1
        expected = day - timedelta(days=1)
    return streak
