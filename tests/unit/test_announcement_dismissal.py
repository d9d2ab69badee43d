"""Per-user announcement dismissal."""

from __future__ import annotations

import pytest

from isekai.announcements.service import dismiss_announcement
from isekai.db.models import Announcement
from isekai.timeutils import utcnow


async def _announcement(db) -> int:
    announcement = Announcement(message="Finals open", created_at=utcnow(), dismissed_by=[])
    db.add(announcement)
    await db.commit()
    return announcement.id


@pytest.mark.asyncio
async def test_dismissals_from_stale_session_are_not_lost(session_factory, db_session) -> None:
    announcement_id = await _announcement(db_session)

    async with session_factory() as stale, session_factory() as other:
        # Loaded before the other user's dismissal lands.
        assert (await stale.get(Announcement, announcement_id)).dismissed_by == []

        await dismiss_announcement(other, 1, announcement_id)
        await dismiss_announcement(stale, 2, announcement_id)

    async with session_factory() as check:
        assert sorted((await check.get(Announcement, announcement_id)).dismissed_by) == [1, 2]


@pytest.mark.asyncio
async def test_repeat_dismissal_is_noop(session_factory, db_session) -> None:
    announcement_id = await _announcement(db_session)

    await dismiss_announcement(db_session, 5, announcement_id)
    await dismiss_announcement(db_session, 5, announcement_id)

    async with session_factory() as check:
        assert (await check.get(Announcement, announcement_id)).dismissed_by == [5]
