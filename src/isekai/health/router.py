"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.config import get_settings
from isekai.database import get_session
from isekai.redis_client import redis_or_none

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


async def _check_redis() -> str:
    redis = redis_or_none()
    if redis is None:
        return "unavailable"
    try:
        await redis.ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Database and Redis reachability plus live socket counts.

    A failing dependency degrades the status but never fails the probe itself.
    """
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        database = f"error: {exc}"

    checks = {"database": database, "redis": await _check_redis()}
    status = "ready" if all(v == "ok" for v in checks.values()) else "degraded"
    return {
        "status": status,
        "checks": checks,
        "websocket": request.app.state.ws_manager.snapshot(),
    }


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
