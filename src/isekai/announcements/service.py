"""Announcement queries and mutations."""

from __future__ import annotations

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.announcements.schemas import AnnouncementCreate
from isekai.db.models import Announcement
from isekai.errors import NotFoundError, ValidationFailedError
from isekai.timeutils import as_utc, utcnow
from isekai.ws.broadcaster import Broadcaster, announcement_event

logger = structlog.get_logger()


async def list_announcements(
    db: AsyncSession,
    user_id: int | None = None,
    *,
    include_expired: bool = False,
) -> list[Announcement]:
    """Announcements newest first, minus those the user dismissed."""
    stmt = select(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc())
    if not include_expired:
        stmt = stmt.where(or_(Announcement.expires_at.is_(None), Announcement.expires_at > utcnow()))
    announcements = list((await db.execute(stmt)).scalars())

    if user_id is None:
        return announcements
    return [a for a in announcements if user_id not in (a.dismissed_by or [])]


async def _get(db: AsyncSession, announcement_id: int, *, for_update: bool = False) -> Announcement:
    stmt = select(Announcement).where(Announcement.id == announcement_id)
    if for_update:
        # Row lock plus a fresh read so concurrent dismissals append to the latest list.
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    announcement = result.scalar_one_or_none()
    if announcement is None:
        raise NotFoundError("Announcement not found")
    return announcement


async def create_announcement(
    db: AsyncSession,
    broadcaster: Broadcaster,
    author_id: int,
    data: AnnouncementCreate,
) -> Announcement:
    """Store an announcement and push it to every connected client."""
    now = utcnow()
    expires_at = as_utc(data.expires_at) if data.expires_at is not None else None
    if expires_at is not None and expires_at <= now:
        raise ValidationFailedError("expires_at must be in the future")

    announcement = Announcement(
        message=data.message,
        type=data.type,
        created_by=author_id,
        created_at=now,
        expires_at=expires_at,
        is_global=data.is_global,
        dismissed_by=[],
    )
    db.add(announcement)
    await db.commit()
    logger.info("announcement_created", announcement_id=announcement.id, type=announcement.type)

    await broadcaster.publish(announcement_event(announcement.message, data.emotion))
    return announcement


async def dismiss_announcement(db: AsyncSession, user_id: int, announcement_id: int) -> None:
    """Hide an announcement for one user. Dismissing twice is a no-op."""
    announcement = await _get(db, announcement_id, for_update=True)
    dismissed = list(announcement.dismissed_by or [])
    if user_id not in dismissed:
        # Reassign so the JSON column change is detected.
        announcement.dismissed_by = [*dismissed, user_id]
    await db.commit()


async def delete_announcement(db: AsyncSession, announcement_id: int) -> None:
    announcement = await _get(db, announcement_id)
    await db.delete(announcement)
    await db.commit()
    logger.info("announcement_deleted", announcement_id=announcement_id)
