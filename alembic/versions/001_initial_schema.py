"""Initial awards schema.

Users and visits, categories, nominees, voting periods, votes,
achievements and grants, announcements.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger(), sa.Identity(always=False), primary_key=True)


def _tstz(name: str, nullable: bool = False, now: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if now else None,
    )


def upgrade() -> None:
    """Create every table of the awards schema."""
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=True, unique=True),
        sa.Column("auth_provider", sa.String(16), nullable=False, server_default="guest"),
        _tstz("summon_date", now=True),
        _tstz("last_seen", nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="user"),
        sa.Column("privacy_mode", sa.String(16), nullable=False, server_default="public"),
        sa.Column("preferences", postgresql.JSONB(), nullable=True),
    )
    op.execute("ALTER TABLE users ADD CONSTRAINT ck_users_role CHECK (role IN ('user', 'admin'))")

    op.create_table(
        "spirit_forms",
        _id(),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("glow_color", sa.String(7), nullable=False, server_default="#ff69b4"),
        sa.Column("orb_style", sa.String(16), nullable=False, server_default="default"),
        sa.Column("aura_size", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("tail_count", sa.Integer(), nullable=False, server_default="3"),
    )

    op.create_table(
        "user_visits",
        _id(),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("visit_date", sa.Date(), nullable=False),
        sa.UniqueConstraint("user_id", "visit_date", name="uq_user_visits_user_date"),
    )
    op.create_index("ix_user_visits_user_id", "user_visits", ["user_id"])

    op.create_table(
        "categories",
        _id(),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("slug", sa.String(128), nullable=False, unique=True),
        sa.Column("element", sa.String(16), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _tstz("created_at", now=True),
    )

    op.create_table(
        "nominees",
        _id(),
        sa.Column("category_id", sa.BigInteger(), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("studio", sa.String(128), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("manga_art_url", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _tstz("created_at", now=True),
    )
    op.create_index("ix_nominees_category_id", "nominees", ["category_id"])

    op.create_table(
        "voting_periods",
        _id(),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _tstz("starts_at"),
        _tstz("ends_at"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
    )

    op.create_table(
        "votes",
        _id(),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("nominee_id", sa.BigInteger(), sa.ForeignKey("nominees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category_id", sa.BigInteger(), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
        _tstz("bound_at"),
        _tstz("updated_at"),
        sa.UniqueConstraint("user_id", "category_id", name="uq_votes_user_category"),
    )
    op.create_index("ix_votes_user_id", "votes", ["user_id"])
    op.create_index("ix_votes_nominee_id", "votes", ["nominee_id"])
    op.create_index("ix_votes_category_id", "votes", ["category_id"])

    op.create_table(
        "achievements",
        _id(),
        sa.Column("slug", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(16), nullable=False, server_default=""),
        sa.Column("rarity", sa.String(16), nullable=False),
        sa.Column("condition", sa.String(64), nullable=False),
    )
    op.execute(
        "ALTER TABLE achievements ADD CONSTRAINT ck_achievements_rarity "
        "CHECK (rarity IN ('common', 'rare', 'epic', 'legendary'))"
    )

    op.create_table(
        "user_achievements",
        _id(),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("achievement_id", sa.BigInteger(), sa.ForeignKey("achievements.id"), nullable=False),
        _tstz("earned_at"),
        sa.UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )
    op.create_index("ix_user_achievements_user_id", "user_achievements", ["user_id"])

    op.create_table(
        "announcements",
        _id(),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="info"),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _tstz("created_at", now=True),
        _tstz("expires_at", nullable=True),
        sa.Column("is_global", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("dismissed_by", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    )


def downgrade() -> None:
    """Drop the awards schema."""
    for table in (
        "announcements",
        "user_achievements",
        "achievements",
        "votes",
        "voting_periods",
        "nominees",
        "categories",
        "user_visits",
        "spirit_forms",
        "users",
    ):
        op.drop_table(table)
