"""Hidden-gem score tests: boundaries, rounding, and live tallies."""

from __future__ import annotations

import pytest

from isekai.db.models import Vote
from isekai.timeutils import utcnow
from isekai.voting.scoring import (
    HIDDEN_GEM_THRESHOLD,
    category_tallies,
    compute_hidden_gem_score,
    is_hidden_gem,
    nominee_tallies,
)


class TestComputeHiddenGemScore:
    def test_no_votes_anywhere(self) -> None:
        assert compute_hidden_gem_score(0, 0, 1) == 0

    def test_no_nominees(self) -> None:
        assert compute_hidden_gem_score(0, 10, 0) == 0

    def test_nominee_without_votes_scores_zero(self) -> None:
        """Zero votes is "no data", not a perfect hidden gem."""
        assert compute_hidden_gem_score(0, 100, 10) == 0

    def test_low_share_is_hidden_gem(self) -> None:
        # avg 10 per nominee, ratio 0.2 -> (1 - 0.2/1.5) * 100 = 86.67
        score = compute_hidden_gem_score(2, 100, 10)
        assert score == 87
        assert is_hidden_gem(score)

    def test_exactly_average(self) -> None:
        # ratio 1.0 -> 33.33
        assert compute_hidden_gem_score(10, 100, 10) == 33

    def test_ratio_at_cutoff_scores_zero(self) -> None:
        assert compute_hidden_gem_score(15, 100, 10) == 0

    def test_ratio_above_cutoff_scores_zero(self) -> None:
        assert compute_hidden_gem_score(50, 100, 10) == 0

    def test_half_rounds_up(self) -> None:
        # avg 16, ratio 0.5625 -> exactly 62.5
        assert compute_hidden_gem_score(9, 32, 2) == 63

    @pytest.mark.parametrize(
        ("votes", "total", "count"),
        [(1, 1, 1), (1, 1000, 2), (7, 9, 3), (999, 1000, 1000), (1, 3, 1)],
    )
    def test_score_in_range(self, votes: int, total: int, count: int) -> None:
        assert 0 <= compute_hidden_gem_score(votes, total, count) <= 100


class TestIsHiddenGem:
    def test_threshold_is_exclusive(self) -> None:
        assert not is_hidden_gem(HIDDEN_GEM_THRESHOLD)
        assert is_hidden_gem(HIDDEN_GEM_THRESHOLD + 1)

    def test_custom_threshold(self) -> None:
        assert is_hidden_gem(50, threshold=40)
        assert not is_hidden_gem(30, threshold=40)


class TestTallies:
    @pytest.mark.asyncio
    async def test_counts_include_zero_vote_nominees(self, db_session, category, nominees, make_user) -> None:
        category_id = category.id
        nominee_ids = [n.id for n in nominees]
        voter = await make_user()
        now = utcnow()
        db_session.add(Vote(
            user_id=voter.id, nominee_id=nominee_ids[0], category_id=category_id, bound_at=now, updated_at=now,
        ))
        await db_session.commit()

        tallies = await category_tallies(db_session, category_id)
        assert set(tallies) == set(nominee_ids)
        assert tallies[nominee_ids[0]].vote_count == 1
        assert tallies[nominee_ids[1]].vote_count == 0
        assert tallies[nominee_ids[1]].hidden_gem_score == 0

    @pytest.mark.asyncio
    async def test_scores_are_per_category(self, db_session, make_category, make_nominees, make_user) -> None:
        busy = await make_category("busy")
        quiet = await make_category("quiet")
        busy_id, quiet_id = busy.id, quiet.id
        busy_nominees = [n.id for n in await make_nominees(busy_id, 2)]
        quiet_nominees = [n.id for n in await make_nominees(quiet_id, 1)]

        now = utcnow()
        for i in range(7):
            voter = await make_user()
            # 6 votes for the first busy nominee, 1 for the second
            target = busy_nominees[0] if i < 6 else busy_nominees[1]
            db_session.add(Vote(user_id=voter.id, nominee_id=target, category_id=busy_id, bound_at=now, updated_at=now))
        voter = await make_user()
        db_session.add(Vote(user_id=voter.id, nominee_id=quiet_nominees[0], category_id=quiet_id, bound_at=now, updated_at=now))
        await db_session.commit()

        tallies = await nominee_tallies(db_session)
        # avg 3.5, ratio 1/3.5 -> 80.95
        assert tallies[busy_nominees[1]].hidden_gem_score == 81
        assert tallies[busy_nominees[1]].is_hidden_gem
        assert tallies[busy_nominees[0]].hidden_gem_score == 0
        # single nominee holding every vote sits at ratio 1.0
        assert tallies[quiet_nominees[0]].hidden_gem_score == 33
