"""One vote per user per category, with re-vote semantics.

The (user_id, category_id) unique constraint is the only serialization point
between concurrent votes from the same user. A losing insert falls back to
updating the row that won, so a double submit never produces two rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from isekai.db.models import Nominee, User, Vote, VotingPeriod
from isekai.errors import NotFoundError, PermissionDeniedError, PersistenceError, VotingClosedError
from isekai.gamification.engine import AchievementEngine, evaluate_achievements_safely
from isekai.timeutils import utcnow
from isekai.voting.scoring import category_tallies
from isekai.ws.broadcaster import Broadcaster, vote_update_event

logger = structlog.get_logger()


@dataclass(frozen=True)
class VoteRecord:
    id: int
    user_id: int
    nominee_id: int
    category_id: int
    bound_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, vote: Vote) -> VoteRecord:
        return cls(
            id=vote.id,
            user_id=vote.user_id,
            nominee_id=vote.nominee_id,
            category_id=vote.category_id,
            bound_at=vote.bound_at,
            updated_at=vote.updated_at,
        )


@dataclass(frozen=True)
class CastVoteResult:
    vote: VoteRecord
    is_update: bool
    is_hidden_gem: bool
    achievements_unlocked: tuple[str, ...] = ()


async def get_open_period(db: AsyncSession) -> VotingPeriod | None:
    """The active voting period whose end is still in the future, if any."""
    result = await db.execute(
        select(VotingPeriod)
        .where(VotingPeriod.is_active.is_(True), VotingPeriod.ends_at > utcnow())
        .order_by(VotingPeriod.ends_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


class VoteManager:
    """Mediates every vote creation, change and removal."""

    def __init__(
        self,
        db: AsyncSession,
        broadcaster: Broadcaster,
        achievements: AchievementEngine | None = None,
    ) -> None:
        self.db = db
        self.broadcaster = broadcaster
        self.achievements = achievements or AchievementEngine(db, broadcaster)

    # ── Queries ──

    async def _find_nominee(self, category_id: int, nominee_id: int) -> Nominee | None:
        result = await self.db.execute(
            select(Nominee).where(Nominee.id == nominee_id, Nominee.category_id == category_id)
        )
        return result.scalar_one_or_none()

    async def _find_vote(self, user_id: int, category_id: int) -> Vote | None:
        result = await self.db.execute(
            select(Vote).where(Vote.user_id == user_id, Vote.category_id == category_id)
        )
        return result.scalar_one_or_none()

    async def _count_votes(self, nominee_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Vote.id)).where(Vote.nominee_id == nominee_id)
        )
        return result.scalar_one()

    async def list_votes(self, user_id: int) -> list[Vote]:
        """The user's votes with nominee and category loaded, newest first."""
        result = await self.db.execute(
            select(Vote)
            .options(selectinload(Vote.nominee).selectinload(Nominee.category))
            .where(Vote.user_id == user_id)
            .order_by(Vote.bound_at.desc(), Vote.id.desc())
        )
        return list(result.scalars())

    # ── Commands ──

    async def _upsert(self, user_id: int, category_id: int, nominee_id: int) -> tuple[VoteRecord, bool, int | None]:
        """Insert or re-bind the (user, category) vote.

        Returns (vote, is_update, previous_nominee_id).
        """
        now = utcnow()
        existing = await self._find_vote(user_id, category_id)

        if existing is None:
            vote = Vote(
                user_id=user_id,
                nominee_id=nominee_id,
                category_id=category_id,
                bound_at=now,
                updated_at=now,
            )
            self.db.add(vote)
            try:
                await self.db.commit()
                return VoteRecord.from_model(vote), False, None
            except IntegrityError:
                # A concurrent request inserted this (user, category) first.
                await self.db.rollback()
                logger.info("vote_insert_conflict", user_id=user_id, category_id=category_id)
                existing = await self._find_vote(user_id, category_id)
                if existing is None:
                    raise

        previous_nominee_id = existing.nominee_id
        existing.nominee_id = nominee_id
        existing.updated_at = now
        await self.db.commit()
        return VoteRecord.from_model(existing), True, previous_nominee_id

    async def cast_vote(self, user_id: int, category_id: int, nominee_id: int) -> CastVoteResult:
        """Cast or change the user's vote in a category.

        Steps run strictly in order: nominee check, voting window check,
        upsert, achievement evaluation, live tally broadcast.
        """
        nominee = await self._find_nominee(category_id, nominee_id)
        if nominee is None:
            raise NotFoundError("Nominee not found in this category")

        if await get_open_period(self.db) is None:
            raise VotingClosedError("Voting has closed")

        # Score as it stood before this vote lands.
        tally = (await category_tallies(self.db, category_id)).get(nominee_id)
        is_hidden_gem = tally is not None and tally.is_hidden_gem

        try:
            vote, is_update, previous_nominee_id = await self._upsert(user_id, category_id, nominee_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("vote_persist_failed", user_id=user_id, category_id=category_id, exc_info=True)
            raise PersistenceError("Failed to create vote") from exc

        logger.info(
            "vote_cast",
            user_id=user_id,
            category_id=category_id,
            nominee_id=nominee_id,
            is_update=is_update,
        )

        outcome = await evaluate_achievements_safely(self.achievements, user_id)

        await self._publish_count(nominee_id, category_id)
        if previous_nominee_id is not None and previous_nominee_id != nominee_id:
            await self._publish_count(previous_nominee_id, category_id)

        return CastVoteResult(
            vote=vote,
            is_update=is_update,
            is_hidden_gem=is_hidden_gem,
            achievements_unlocked=outcome.granted,
        )

    async def remove_vote(self, actor: User, vote_id: int) -> None:
        """Delete a vote. Only its owner or an admin may do so; grants are kept."""
        vote = (await self.db.execute(select(Vote).where(Vote.id == vote_id))).scalar_one_or_none()
        if vote is None:
            raise NotFoundError("Vote not found")
        if vote.user_id != actor.id and not actor.is_admin:
            raise PermissionDeniedError("Unauthorized")

        nominee_id, category_id = vote.nominee_id, vote.category_id
        try:
            await self.db.delete(vote)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("vote_delete_failed", vote_id=vote_id, exc_info=True)
            raise PersistenceError("Failed to delete vote") from exc

        logger.info("vote_removed", vote_id=vote_id, actor_id=actor.id)
        await self._publish_count(nominee_id, category_id)

    async def _publish_count(self, nominee_id: int, category_id: int) -> None:
        """Push the nominee's current tally to the category's subscribers. Best-effort."""
        try:
            count = await self._count_votes(nominee_id)
        except SQLAlchemyError:
            logger.warning("vote_count_failed", nominee_id=nominee_id, exc_info=True)
            return
        await self.broadcaster.publish(vote_update_event(nominee_id, count, category_id))
