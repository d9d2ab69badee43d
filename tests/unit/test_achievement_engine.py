"""AchievementEngine: stats gathering, exactly-once grants, best-effort wrapper."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from isekai.db.models import Achievement, UserAchievement, Vote
from isekai.gamification.engine import AchievementEngine, evaluate_achievements_safely
from isekai.gamification.seed import ACHIEVEMENT_SEED_DATA, seed_achievements
from isekai.gamification.visits import record_visit
from isekai.timeutils import utcnow


async def _add_vote(db, user_id: int, category_id: int, nominee_id: int) -> None:
    now = utcnow()
    db.add(Vote(user_id=user_id, nominee_id=nominee_id, category_id=category_id, bound_at=now, updated_at=now))
    await db.commit()


async def _granted_slugs(db, user_id: int) -> set[str]:
    result = await db.execute(
        select(Achievement.slug)
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars())


class TestSeed:
    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session) -> None:
        await seed_achievements(db_session)
        await seed_achievements(db_session)
        count = (await db_session.execute(select(func.count(Achievement.id)))).scalar_one()
        assert count == len(ACHIEVEMENT_SEED_DATA)


class TestGatherStats:
    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session) -> None:
        assert await AchievementEngine(db_session).gather_stats(9999) is None

    @pytest.mark.asyncio
    async def test_counts(self, db_session, user, category, nominees, make_category, make_nominees) -> None:
        user_id, category_id = user.id, category.id
        other = await make_category("best-drama")
        other_id = other.id
        other_nominee = (await make_nominees(other_id, 1))[0].id
        await _add_vote(db_session, user_id, category_id, nominees[0].id)
        await _add_vote(db_session, user_id, other_id, other_nominee)

        stats = await AchievementEngine(db_session).gather_stats(user_id)

        assert stats is not None
        assert stats.vote_count == 2
        assert stats.category_count == 2
        assert stats.total_categories == 2
        assert stats.days_visited == 0

    @pytest.mark.asyncio
    async def test_hidden_gem_votes_use_live_scores(
        self, db_session, make_user, make_category, make_nominees,
    ) -> None:
        cat = await make_category("best-mecha")
        category_id = cat.id
        popular, underdog = [n.id for n in await make_nominees(category_id, 2)]
        for _ in range(6):
            voter = await make_user()
            await _add_vote(db_session, voter.id, category_id, popular)
        fan = await make_user()
        fan_id = fan.id
        await _add_vote(db_session, fan_id, category_id, underdog)

        stats = await AchievementEngine(db_session).gather_stats(fan_id)
        assert stats is not None
        assert stats.hidden_gem_votes == 1

    @pytest.mark.asyncio
    async def test_visit_streak(self, db_session, user) -> None:
        user_id = user.id
        today = utcnow().date()
        for n in range(3):
            await record_visit(db_session, user_id, today - timedelta(days=n))
        await db_session.commit()

        stats = await AchievementEngine(db_session).gather_stats(user_id)
        assert stats is not None
        assert stats.days_visited == 3


class TestEvaluateAndGrant:
    @pytest.mark.asyncio
    async def test_nothing_earned_without_activity(self, db_session, make_user) -> None:
        veteran = await make_user(joined_ago=timedelta(days=40))
        assert await AchievementEngine(db_session).evaluate_and_grant(veteran.id) == []

    @pytest.mark.asyncio
    async def test_grants_are_exactly_once(self, db_session, user, category, nominees, broadcaster) -> None:
        user_id = user.id
        await _add_vote(db_session, user_id, category.id, nominees[0].id)
        engine = AchievementEngine(db_session, broadcaster)

        first = await engine.evaluate_and_grant(user_id)
        second = await engine.evaluate_and_grant(user_id)

        # single category, so completionist comes along with the first vote
        assert set(first) == {"first-vote", "early-soul", "completionist"}
        assert second == []
        assert len(broadcaster.named("achievement:unlocked")) == 3
        assert await _granted_slugs(db_session, user_id) == set(first)

    @pytest.mark.asyncio
    async def test_loyal_spirit_from_visits(self, db_session, make_user) -> None:
        regular = await make_user(joined_ago=timedelta(days=10))
        user_id = regular.id
        today = utcnow().date()
        for n in range(3):
            await record_visit(db_session, user_id, today - timedelta(days=n))
        await db_session.commit()

        assert await AchievementEngine(db_session).evaluate_and_grant(user_id) == ["loyal-spirit"]

    @pytest.mark.asyncio
    async def test_concurrent_grant_is_benign(self, db_session, user, category, nominees, monkeypatch) -> None:
        """A grant inserted by a racing evaluation is skipped, not duplicated."""
        user_id = user.id
        await _add_vote(db_session, user_id, category.id, nominees[0].id)
        engine = AchievementEngine(db_session)

        first_vote_id = (await db_session.execute(
            select(Achievement.id).where(Achievement.slug == "first-vote")
        )).scalar_one()
        db_session.add(UserAchievement(user_id=user_id, achievement_id=first_vote_id, earned_at=utcnow()))
        await db_session.commit()

        async def nothing_granted_yet(uid: int) -> set[int]:
            return set()

        monkeypatch.setattr(engine, "_granted_ids", nothing_granted_yet)

        granted = await engine.evaluate_and_grant(user_id)

        assert "first-vote" not in granted
        count = (await db_session.execute(
            select(func.count(UserAchievement.id)).where(
                UserAchievement.user_id == user_id, UserAchievement.achievement_id == first_vote_id,
            )
        )).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_unknown_condition_is_skipped(self, db_session, user, category, nominees) -> None:
        user_id = user.id
        db_session.add(Achievement(
            slug="typo", name="Typo", description="Never unlocks", rarity="common", condition="first_votee",
        ))
        await db_session.commit()
        await _add_vote(db_session, user_id, category.id, nominees[0].id)

        granted = await AchievementEngine(db_session).evaluate_and_grant(user_id)

        assert "typo" not in granted
        assert "first-vote" in granted


class TestEvaluateSafely:
    @pytest.mark.asyncio
    async def test_success_outcome(self, db_session, user, category, nominees) -> None:
        user_id = user.id
        await _add_vote(db_session, user_id, category.id, nominees[0].id)

        outcome = await evaluate_achievements_safely(AchievementEngine(db_session), user_id)

        assert outcome.succeeded
        assert "first-vote" in outcome.granted

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, db_session, user, monkeypatch) -> None:
        engine = AchievementEngine(db_session)

        async def explode(uid: int):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine, "gather_stats", explode)

        outcome = await evaluate_achievements_safely(engine, user.id)

        assert not outcome.succeeded
        assert outcome.error == "boom"
        assert outcome.granted == ()
