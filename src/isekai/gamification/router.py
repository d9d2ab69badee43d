"""Achievement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.auth.dependencies import get_current_user
from isekai.database import get_session
from isekai.db.models import Achievement, User, UserAchievement
from isekai.gamification.engine import AchievementEngine, evaluate_achievements_safely
from isekai.gamification.schemas import (
    AchievementCheckResponse,
    AchievementResponse,
    EarnedAchievementResponse,
    UserAchievementsResponse,
)
from isekai.schemas import Envelope, ok
from isekai.ws.broadcaster import Broadcaster, get_broadcaster

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


@router.get("/achievements", response_model=Envelope[list[AchievementResponse]])
async def list_achievements(db: AsyncSession = Depends(get_session)):
    """All achievement definitions with how many users earned each."""
    result = await db.execute(
        select(Achievement, func.count(UserAchievement.id))
        .outerjoin(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .group_by(Achievement.id)
        .order_by(Achievement.id)
    )
    return ok([
        AchievementResponse(
            slug=a.slug,
            name=a.name,
            description=a.description,
            icon=a.icon,
            rarity=a.rarity,
            total_earned=earned,
        )
        for a, earned in result.all()
    ])


@router.get("/users/me/achievements", response_model=Envelope[UserAchievementsResponse])
async def my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Achievements the caller has earned, newest first."""
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user.id)
        .order_by(UserAchievement.earned_at.desc())
    )
    grants = result.unique().scalars().all()
    total_available = (await db.execute(select(func.count(Achievement.id)))).scalar_one()

    earned = [
        EarnedAchievementResponse(
            slug=g.achievement.slug,
            name=g.achievement.name,
            description=g.achievement.description,
            icon=g.achievement.icon,
            rarity=g.achievement.rarity,
            earned_at=g.earned_at,
        )
        for g in grants
    ]
    return ok(UserAchievementsResponse(
        earned=earned,
        total_available=total_available,
        total_earned=len(earned),
    ))


@router.post("/achievements/check", response_model=Envelope[AchievementCheckResponse])
async def check_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Re-evaluate the caller's achievements, e.g. after a return visit."""
    user_id = user.id
    outcome = await evaluate_achievements_safely(AchievementEngine(db, broadcaster), user_id)
    return ok(AchievementCheckResponse(granted=list(outcome.granted)))
