"""Announcement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.announcements import service
from isekai.announcements.schemas import AnnouncementCreate, AnnouncementDismiss, AnnouncementResponse
from isekai.auth.dependencies import get_current_user, get_optional_user, require_admin
from isekai.database import get_session
from isekai.db.models import User
from isekai.schemas import Envelope, done, ok
from isekai.ws.broadcaster import Broadcaster, get_broadcaster

router = APIRouter(prefix="/api/v1/announcements", tags=["Announcements"])


@router.get("", response_model=Envelope[list[AnnouncementResponse]])
async def list_announcements(
    include_expired: bool = Query(False),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """Active announcements, excluding ones the caller dismissed."""
    announcements = await service.list_announcements(
        db, user.id if user else None, include_expired=include_expired,
    )
    return ok([AnnouncementResponse.model_validate(a) for a in announcements])


@router.post("", response_model=Envelope[AnnouncementResponse], status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Create and broadcast an announcement (admin only)."""
    announcement = await service.create_announcement(db, broadcaster, admin.id, body)
    return ok(AnnouncementResponse.model_validate(announcement))


@router.patch("", response_model=Envelope[None])
async def dismiss_announcement(
    body: AnnouncementDismiss,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Dismiss an announcement for the caller."""
    await service.dismiss_announcement(db, user.id, body.announcement_id)
    return done("Announcement dismissed")


@router.delete("", response_model=Envelope[None])
async def delete_announcement(
    announcement_id: int = Query(..., alias="id"),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Delete an announcement (admin only)."""
    await service.delete_announcement(db, announcement_id)
    return done("Announcement deleted")
