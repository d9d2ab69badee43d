"""Achievement condition evaluators."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from isekai.gamification.conditions import AchievementCondition, UserStats, is_condition_met

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

BASE = UserStats(
    vote_count=0,
    category_count=0,
    total_categories=8,
    days_visited=1,
    hidden_gem_votes=0,
    join_date=NOW - timedelta(days=30),
    evaluated_at=NOW,
)


def stats(**changes: object) -> UserStats:
    return replace(BASE, **changes)


class TestConditionSet:
    def test_every_seeded_condition_is_known(self) -> None:
        from isekai.gamification.seed import ACHIEVEMENT_SEED_DATA

        for data in ACHIEVEMENT_SEED_DATA:
            assert AchievementCondition.from_key(data["condition"]) is not None

    def test_unknown_key_never_unlocks(self) -> None:
        maxed = stats(vote_count=100, category_count=8, days_visited=30, hidden_gem_votes=50)
        assert AchievementCondition.from_key("first_votes") is None
        assert is_condition_met("first_votes", maxed) is False


class TestFirstVote:
    def test_requires_a_vote(self) -> None:
        assert not is_condition_met("first_vote", stats())
        assert is_condition_met("first_vote", stats(vote_count=1))


class TestHiddenGemHunter:
    @pytest.mark.parametrize(("gems", "expected"), [(2, False), (3, True), (4, True)])
    def test_threshold(self, gems: int, expected: bool) -> None:
        assert is_condition_met("hidden_gem_hunter", stats(hidden_gem_votes=gems)) is expected


class TestCompletionist:
    def test_all_categories(self) -> None:
        assert is_condition_met("completionist", stats(category_count=8))

    def test_missing_one(self) -> None:
        assert not is_condition_met("completionist", stats(category_count=7))

    def test_no_categories_configured(self) -> None:
        assert not is_condition_met("completionist", stats(category_count=0, total_categories=0))


class TestEarlySoul:
    def test_vote_within_first_day(self) -> None:
        fresh = stats(vote_count=1, join_date=NOW - timedelta(hours=23))
        assert is_condition_met("early_soul", fresh)

    def test_window_edge_is_inclusive(self) -> None:
        assert is_condition_met("early_soul", stats(vote_count=1, join_date=NOW - timedelta(hours=24)))

    def test_too_late(self) -> None:
        assert not is_condition_met("early_soul", stats(vote_count=1, join_date=NOW - timedelta(hours=25)))

    def test_needs_a_vote(self) -> None:
        assert not is_condition_met("early_soul", stats(join_date=NOW - timedelta(hours=1)))

    def test_naive_join_date_treated_as_utc(self) -> None:
        naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)
        assert is_condition_met("early_soul", stats(vote_count=1, join_date=naive))


class TestLoyalSpirit:
    @pytest.mark.parametrize(("days", "expected"), [(1, False), (2, False), (3, True), (10, True)])
    def test_streak(self, days: int, expected: bool) -> None:
        assert is_condition_met("loyal_spirit", stats(days_visited=days)) is expected


class TestDedicatedVoter:
    def test_ten_votes(self) -> None:
        assert not is_condition_met("dedicated_voter", stats(vote_count=9))
        assert is_condition_met("dedicated_voter", stats(vote_count=10))
