"""Admin-only endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.admin.schemas import AdminStatsResponse
from isekai.admin.service import get_stats
from isekai.auth.dependencies import require_admin
from isekai.database import get_session
from isekai.db.models import User
from isekai.schemas import Envelope, ok

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/stats", response_model=Envelope[AdminStatsResponse])
async def admin_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return ok(await get_stats(db))
