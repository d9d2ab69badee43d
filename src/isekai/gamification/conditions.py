"""Achievement unlock conditions.

The set of conditions is closed: each member of ``AchievementCondition``
carries its own evaluator. Definitions stored in the database reference a
member by key; keys that do not name a member never unlock anything.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

import structlog

from isekai.timeutils import as_utc

logger = structlog.get_logger()

EARLY_SOUL_WINDOW = timedelta(hours=24)
HIDDEN_GEM_HUNTER_VOTES = 3
LOYAL_SPIRIT_DAYS = 3
DEDICATED_VOTER_VOTES = 10


@dataclass(frozen=True)
class UserStats:
    """Snapshot of a user's voting activity used to evaluate conditions."""

    vote_count: int
    category_count: int
    total_categories: int
    days_visited: int
    hidden_gem_votes: int
    join_date: datetime
    evaluated_at: datetime

    @property
    def time_since_join(self) -> timedelta:
        return as_utc(self.evaluated_at) - as_utc(self.join_date)


def _first_vote(stats: UserStats) -> bool:
    return stats.vote_count >= 1


def _hidden_gem_hunter(stats: UserStats) -> bool:
    return stats.hidden_gem_votes >= HIDDEN_GEM_HUNTER_VOTES


def _completionist(stats: UserStats) -> bool:
    return stats.total_categories > 0 and stats.category_count >= stats.total_categories


def _early_soul(stats: UserStats) -> bool:
    return stats.time_since_join <= EARLY_SOUL_WINDOW and stats.vote_count > 0


def _loyal_spirit(stats: UserStats) -> bool:
    return stats.days_visited >= LOYAL_SPIRIT_DAYS


def _dedicated_voter(stats: UserStats) -> bool:
    return stats.vote_count >= DEDICATED_VOTER_VOTES


class AchievementCondition(Enum):
    """Closed set of unlock conditions, keyed by their stored name."""

    FIRST_VOTE = ("first_vote", _first_vote)
    HIDDEN_GEM_HUNTER = ("hidden_gem_hunter", _hidden_gem_hunter)
    COMPLETIONIST = ("completionist", _completionist)
    EARLY_SOUL = ("early_soul", _early_soul)
    LOYAL_SPIRIT = ("loyal_spirit", _loyal_spirit)
    DEDICATED_VOTER = ("dedicated_voter", _dedicated_voter)

    def __new__(cls, key: str, evaluator: Callable[[UserStats], bool]) -> AchievementCondition:
        member = object.__new__(cls)
        member._value_ = key
        member.evaluator = evaluator
        return member

    @property
    def key(self) -> str:
        return self.value

    def is_satisfied(self, stats: UserStats) -> bool:
        return self.evaluator(stats)

    @classmethod
    def from_key(cls, key: str) -> AchievementCondition | None:
        try:
            return cls(key)
        except ValueError:
            return None


def is_condition_met(key: str, stats: UserStats) -> bool:
    """Evaluate a stored condition key. Unknown keys are never satisfied."""
    condition = AchievementCondition.from_key(key)
    if condition is None:
        logger.warning("unknown_achievement_condition", condition=key)
        return False
    return condition.is_satisfied(stats)
