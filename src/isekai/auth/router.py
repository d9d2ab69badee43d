"""Guest session endpoint. Provider sign-in lives upstream."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.auth.jwt import create_access_token
from isekai.auth.schemas import GuestSessionResponse
from isekai.auth.service import create_guest_user
from isekai.database import get_session
from isekai.schemas import Envelope, ok

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/guest", response_model=Envelope[GuestSessionResponse], status_code=201)
async def create_guest_session(db: AsyncSession = Depends(get_session)):
    """Create a guest user and return an access token for it."""
    user = await create_guest_user(db)
    token = create_access_token(user.id, user.role)
    return ok(GuestSessionResponse(
        user_id=user.id,
        username=user.username,
        role=user.role,
        access_token=token,
    ))
