"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from isekai.auth.jwt import verify_token
from isekai.auth.service import get_user_by_id, touch_user
from isekai.database import get_session
from isekai.db.models import User
from isekai.errors import PermissionDeniedError, UnauthenticatedError

_bearer = HTTPBearer(auto_error=False)


async def _resolve_user(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
) -> User | None:
    if credentials is None:
        return None
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise UnauthenticatedError(str(e)) from e

    user = await get_user_by_id(db, int(payload["sub"]))
    if user is None:
        raise UnauthenticatedError("User not found")
    await touch_user(db, user)
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the User model.

    Raises 401 when no identity is present or the token is invalid.
    """
    user = await _resolve_user(credentials, db)
    if user is None:
        raise UnauthenticatedError("Unauthorized - Please sign in")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Same as get_current_user but anonymous callers get None."""
    return await _resolve_user(credentials, db)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only users with the admin role."""
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user
