"""HS256 access tokens.

The role claim is informational only; request dependencies reload the user
row and authorize from the stored role.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import jwt

from isekai.config import get_settings
from isekai.timeutils import utcnow

ACCESS = "access"


def create_access_token(user_id: int, role: str = "user") -> str:
    """Issue a signed access token for ``user_id``."""
    settings = get_settings()
    issued = utcnow()
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "type": ACCESS,
        "iss": settings.jwt_issuer,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """
    Decode ``token`` and return its claims.

    Raises:
        jwt.InvalidTokenError: bad signature, wrong issuer, expired, missing
            subject, or a token of another type.
    """
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    token_type = claims.get("type")
    if token_type != expected_type:
        msg = f"Expected a {expected_type} token, got {token_type!r}"
        raise jwt.InvalidTokenError(msg)
    return claims
