"""Dialect-aware INSERT ... ON CONFLICT helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model: type[Any]) -> Any:  # noqa: ANN401
    """Return an INSERT construct that supports ``on_conflict_*`` for the bound dialect."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(model)
    if name == "sqlite":
        return sqlite.insert(model)
    msg = f"Unsupported dialect for upserts: {name}"
    raise RuntimeError(msg)
