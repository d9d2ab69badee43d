"""Current-user profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.auth.dependencies import get_current_user
from isekai.database import get_session
from isekai.db.models import User
from isekai.schemas import Envelope, ok
from isekai.users import service
from isekai.users.schemas import (
    ProfileResponse,
    ProfileUpdate,
    SpiritFormResponse,
    SpiritFormUpdate,
    UserSummary,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=Envelope[ProfileResponse])
async def get_my_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Profile with vote statistics and category affinity."""
    stats = await service.get_profile_stats(db, user.id)
    spirit_form = await service.get_spirit_form(db, user.id)
    return ok(ProfileResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        auth_provider=user.auth_provider,
        summon_date=user.summon_date,
        last_seen=user.last_seen,
        role=user.role,
        privacy_mode=user.privacy_mode,
        preferences=user.preferences,
        spirit_form=SpiritFormResponse.model_validate(spirit_form) if spirit_form else None,
        stats=stats,
    ))


@router.patch("/me", response_model=Envelope[UserSummary])
async def update_my_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Update username, privacy mode or preferences."""
    user = await service.update_profile(db, user, body)
    return ok(UserSummary.model_validate(user))


@router.get("/me/spirit-form", response_model=Envelope[SpiritFormResponse])
async def get_my_spirit_form(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Spirit form, created with defaults on first access."""
    form = await service.get_or_create_spirit_form(db, user.id)
    return ok(SpiritFormResponse.model_validate(form))


@router.patch("/me/spirit-form", response_model=Envelope[SpiritFormResponse])
async def update_my_spirit_form(
    body: SpiritFormUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    form = await service.update_spirit_form(db, user.id, body)
    return ok(SpiritFormResponse.model_validate(form))
