"""Evaluates a user's stats and grants earned achievements.

Grants are permanent and unique per (user, achievement). Concurrent
evaluations for the same user race on that unique constraint; the loser's
insert is rolled back and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.db.models import Achievement, Category, User, UserAchievement, Vote
from isekai.gamification.conditions import UserStats, is_condition_met
from isekai.gamification.visits import consecutive_days
from isekai.timeutils import utcnow
from isekai.voting.scoring import nominee_tallies
from isekai.ws.broadcaster import Broadcaster, NullBroadcaster, achievement_unlocked_event

logger = structlog.get_logger()


@dataclass(frozen=True)
class AchievementDef:
    """Plain copy of an achievement row, safe to use after a rollback."""

    id: int
    slug: str
    name: str
    rarity: str
    condition: str


@dataclass(frozen=True)
class EvaluationOutcome:
    """Result of a best-effort evaluation. Callers inspect it for logging only."""

    granted: tuple[str, ...] = ()
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class AchievementEngine:
    """Evaluates achievement conditions for a user."""

    def __init__(self, db: AsyncSession, broadcaster: Broadcaster | None = None) -> None:
        self.db = db
        self.broadcaster = broadcaster or NullBroadcaster()

    async def gather_stats(self, user_id: int) -> UserStats | None:
        """Compute the user's current voting stats. None if the user does not exist."""
        user = (await self.db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if user is None:
            return None
        join_date = user.summon_date

        votes = (
            await self.db.execute(
                select(Vote.nominee_id, Vote.category_id).where(Vote.user_id == user_id)
            )
        ).all()
        total_categories = (
            await self.db.execute(
                select(func.count(Category.id)).where(Category.is_active.is_(True))
            )
        ).scalar_one()

        tallies = await nominee_tallies(self.db)
        hidden_gem_votes = sum(
            1 for nominee_id, _ in votes
            if nominee_id in tallies and tallies[nominee_id].is_hidden_gem
        )

        now = utcnow()
        return UserStats(
            vote_count=len(votes),
            category_count=len({category_id for _, category_id in votes}),
            total_categories=total_categories,
            days_visited=await consecutive_days(self.db, user_id, now.date()),
            hidden_gem_votes=hidden_gem_votes,
            join_date=join_date,
            evaluated_at=now,
        )

    async def _load_definitions(self) -> list[AchievementDef]:
        result = await self.db.execute(select(Achievement).order_by(Achievement.id))
        return [
            AchievementDef(id=a.id, slug=a.slug, name=a.name, rarity=a.rarity, condition=a.condition)
            for a in result.scalars()
        ]

    async def _granted_ids(self, user_id: int) -> set[int]:
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        return set(result.scalars())

    async def _grant(self, user_id: int, achievement: AchievementDef) -> bool:
        """Insert one grant in its own transaction. False if it already existed."""
        self.db.add(UserAchievement(
            user_id=user_id,
            achievement_id=achievement.id,
            earned_at=utcnow(),
        ))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.debug("achievement_already_granted", user_id=user_id, slug=achievement.slug)
            return False
        return True

    async def evaluate_and_grant(self, user_id: int) -> list[str]:
        """Grant every achievement the user has newly satisfied.

        Returns the slugs granted by this call (may be empty).
        """
        stats = await self.gather_stats(user_id)
        if stats is None:
            return []

        definitions = await self._load_definitions()
        already = await self._granted_ids(user_id)

        granted: list[str] = []
        for achievement in definitions:
            if achievement.id in already:
                continue
            if not is_condition_met(achievement.condition, stats):
                continue
            if await self._grant(user_id, achievement):
                granted.append(achievement.slug)
                logger.info("achievement_granted", user_id=user_id, slug=achievement.slug)
                await self.broadcaster.publish(achievement_unlocked_event(
                    user_id, achievement.slug, achievement.name, achievement.rarity,
                ))

        return granted


async def evaluate_achievements_safely(engine: AchievementEngine, user_id: int) -> EvaluationOutcome:
    """Run ``evaluate_and_grant`` without ever raising.

    Failures are logged and reported in the outcome; grants committed before
    the failure stay committed.
    """
    try:
        granted = await engine.evaluate_and_grant(user_id)
    except Exception as exc:
        logger.error("achievement_evaluation_failed", user_id=user_id, error=str(exc), exc_info=True)
        try:
            await engine.db.rollback()
        except Exception:
            logger.warning("achievement_rollback_failed", user_id=user_id, exc_info=True)
        return EvaluationOutcome(error=str(exc))
    return EvaluationOutcome(granted=tuple(granted))
