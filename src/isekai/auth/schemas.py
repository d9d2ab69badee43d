"""Pydantic models for auth endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class GuestSessionResponse(BaseModel):
    user_id: int
    username: str
    role: str
    access_token: str
    token_type: str = "bearer"
