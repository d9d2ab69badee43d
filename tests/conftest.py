"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite) with the ORM
schema created directly from the models. Redis is never initialised, so the
rate limiter lets every request through and publishes go to a recording
broadcaster.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from isekai.auth.jwt import create_access_token
from isekai.database import get_session
from isekai.db.base import Base
from isekai.db.models import Category, Nominee, User, VotingPeriod
from isekai.gamification.seed import seed_achievements
from isekai.main import create_app
from isekai.timeutils import utcnow
from isekai.ws.broadcaster import BroadcastEvent, get_broadcaster


class RecordingBroadcaster:
    """Collects published events instead of sending them anywhere."""

    def __init__(self) -> None:
        self.events: list[BroadcastEvent] = []

    async def publish(self, event: BroadcastEvent) -> None:
        self.events.append(event)

    def named(self, name: str) -> list[BroadcastEvent]:
        return [e for e in self.events if e.event == name]


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Session with achievement definitions already seeded."""
    async with session_factory() as session:
        await seed_achievements(session)
        yield session


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    db_session: AsyncSession,
    broadcaster: RecordingBroadcaster,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against a fresh app wired to the test database."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ── Data factories ──


MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture
def make_user(db_session: AsyncSession) -> MakeUser:
    counter = {"n": 0}

    async def _make(role: str = "user", joined_ago: timedelta = timedelta(0)) -> User:
        counter["n"] += 1
        user = User(
            username=f"soul{counter['n']}",
            auth_provider="guest",
            role=role,
            summon_date=utcnow() - joined_ago,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user: MakeUser) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def admin(make_user: MakeUser) -> User:
    return await make_user(role="admin")


def _auth_headers(user_id: int, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


async def create_category(db: AsyncSession, slug: str, order: int = 0) -> Category:
    category = Category(name=slug.replace("-", " ").title(), slug=slug, element="fire", order=order)
    db.add(category)
    await db.commit()
    return category


async def create_nominees(db: AsyncSession, category_id: int, count: int) -> list[Nominee]:
    nominees = [
        Nominee(category_id=category_id, title=f"Show {i}", image_url=f"https://img.example/{category_id}/{i}.png")
        for i in range(count)
    ]
    db.add_all(nominees)
    await db.commit()
    return nominees


@pytest_asyncio.fixture
async def open_period(db_session: AsyncSession) -> VotingPeriod:
    now = utcnow()
    period = VotingPeriod(
        name="Test Awards",
        starts_at=now - timedelta(days=1),
        ends_at=now + timedelta(days=7),
        is_active=True,
    )
    db_session.add(period)
    await db_session.commit()
    return period


@pytest_asyncio.fixture
async def category(db_session: AsyncSession) -> Category:
    return await create_category(db_session, "best-action", order=1)


@pytest_asyncio.fixture
async def nominees(db_session: AsyncSession, category: Category) -> list[Nominee]:
    return await create_nominees(db_session, category.id, 3)


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Builds a bearer header for a user id."""
    return _auth_headers


@pytest.fixture
def make_category(db_session: AsyncSession) -> Callable[..., Awaitable[Category]]:
    async def _make(slug: str, order: int = 0) -> Category:
        return await create_category(db_session, slug, order)

    return _make


@pytest.fixture
def make_nominees(db_session: AsyncSession) -> Callable[..., Awaitable[list[Nominee]]]:
    async def _make(category_id: int, count: int) -> list[Nominee]:
        return await create_nominees(db_session, category_id, count)

    return _make
