"""ORM models for the awards schema.

Vote uniqueness per (user, category) and grant uniqueness per
(user, achievement) are enforced by the database; the services rely on those
constraints as their serialization points.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isekai.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")
JSONType = JSON().with_variant(JSONB, "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    auth_provider: Mapped[str] = mapped_column(String(16), nullable=False, default="guest", server_default="guest")
    summon_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    privacy_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="public", server_default="public")
    preferences: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    votes: Mapped[list[Vote]] = relationship(
        "Vote", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    achievements: Mapped[list[UserAchievement]] = relationship(
        "UserAchievement", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    spirit_form: Mapped[SpiritForm | None] = relationship(
        "SpiritForm", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class SpiritForm(Base):
    """Cosmetic avatar settings, one row per user."""

    __tablename__ = "spirit_forms"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    glow_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#ff69b4", server_default="#ff69b4")
    orb_style: Mapped[str] = mapped_column(String(16), nullable=False, default="default", server_default="default")
    aura_size: Mapped[str] = mapped_column(String(16), nullable=False, default="medium", server_default="medium")
    tail_count: Mapped[int] = mapped_column(Integer, nullable=False, default=3, server_default="3")

    user: Mapped[User] = relationship("User", back_populates="spirit_form")


class UserVisit(Base):
    """One row per user per UTC day on which the user was seen."""

    __tablename__ = "user_visits"
    __table_args__ = (
        UniqueConstraint("user_id", "visit_date", name="uq_user_visits_user_date"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    visit_date: Mapped[date] = mapped_column(Date, nullable=False)


# ---------------------------------------------------------------------------
# Reference data: categories, nominees, voting periods
# ---------------------------------------------------------------------------


class Category(Base):
    """A voting division. Owns its nominees."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    element: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    nominees: Mapped[list[Nominee]] = relationship(
        "Nominee", back_populates="category", cascade="all, delete-orphan", passive_deletes=True
    )


class Nominee(Base):
    """A candidate in exactly one category. Vote count and hidden-gem score are derived."""

    __tablename__ = "nominees"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    studio: Mapped[str | None] = mapped_column(String(128), nullable=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    manga_art_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    category: Mapped[Category] = relationship("Category", back_populates="nominees")


class VotingPeriod(Base):
    """Administratively controlled window during which votes may be cast."""

    __tablename__ = "voting_periods"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


class Vote(Base):
    """Binding of one user to one nominee. One row per (user_id, category_id)."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "category_id", name="uq_votes_user_category"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nominee_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("nominees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bound_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship("User", back_populates="votes")
    nominee: Mapped[Nominee] = relationship("Nominee")


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Achievement definitions, seeded on startup."""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="", server_default="")
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    condition: Mapped[str] = mapped_column(String(64), nullable=False)


class UserAchievement(Base):
    """Achievements earned by users. UNIQUE(user_id, achievement_id) prevents duplicates."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    achievement_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("achievements.id"), nullable=False
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship("User", back_populates="achievements")
    achievement: Mapped[Achievement] = relationship("Achievement", lazy="joined")


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------


class Announcement(Base):
    """Site-wide banner messages, dismissible per user."""

    __tablename__ = "announcements"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="info", server_default="info")
    created_by: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    dismissed_by: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
