"""Profile and spirit form writes under concurrent requests."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select

from isekai.db.models import SpiritForm, User
from isekai.errors import ConflictError
from isekai.users.schemas import ProfileUpdate
from isekai.users.service import get_or_create_spirit_form, update_profile


class TestRename:
    @pytest.mark.asyncio
    async def test_simultaneous_renames_to_same_name(self, session_factory, make_user) -> None:
        """Both pass the availability check; the second commit becomes a conflict."""
        first_id, second_id = (await make_user()).id, (await make_user()).id

        async with session_factory() as s1, session_factory() as s2:
            first = await s1.get(User, first_id)
            second = await s2.get(User, second_id)
            outcomes = await asyncio.gather(
                update_profile(s1, first, ProfileUpdate(username="samename")),
                update_profile(s2, second, ProfileUpdate(username="samename")),
                return_exceptions=True,
            )

        assert sum(isinstance(o, User) for o in outcomes) == 1
        assert sum(isinstance(o, ConflictError) for o in outcomes) == 1
        async with session_factory() as check:
            owners = (await check.execute(select(User.id).where(User.username == "samename"))).scalars().all()
        assert len(owners) == 1

    @pytest.mark.asyncio
    async def test_taken_name_rejected_before_commit(self, db_session, make_user) -> None:
        taken = await make_user()
        renamer = await make_user()

        with pytest.raises(ConflictError, match="Username already taken"):
            await update_profile(db_session, renamer, ProfileUpdate(username=taken.username))


class TestSpiritFormCreation:
    @pytest.mark.asyncio
    async def test_concurrent_first_reads_share_one_row(self, session_factory, user) -> None:
        user_id = user.id

        async with session_factory() as s1, session_factory() as s2:
            forms = await asyncio.gather(
                get_or_create_spirit_form(s1, user_id),
                get_or_create_spirit_form(s2, user_id),
            )

        assert forms[0].id == forms[1].id
        assert forms[0].glow_color == "#ff69b4"
        assert forms[0].tail_count == 3
        async with session_factory() as check:
            rows = (
                await check.execute(select(func.count(SpiritForm.id)).where(SpiritForm.user_id == user_id))
            ).scalar_one()
        assert rows == 1

    @pytest.mark.asyncio
    async def test_existing_form_returned_unchanged(self, db_session, user) -> None:
        created = await get_or_create_spirit_form(db_session, user.id)
        created.tail_count = 7
        await db_session.commit()

        again = await get_or_create_spirit_form(db_session, user.id)

        assert again.id == created.id
        assert again.tail_count == 7
