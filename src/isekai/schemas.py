"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Uniform ``{success, data, error}`` response body."""

    success: bool = True
    data: T | None = None
    error: str | None = None
    message: str | None = None


def ok(data: T) -> Envelope[T]:
    return Envelope(success=True, data=data)


def done(message: str) -> Envelope[None]:
    return Envelope(success=True, message=message)
