"""Real-time broadcast collaborator.

Services publish through a ``Broadcaster`` handed to them by the caller; the
application lifespan owns the concrete instance. Delivery is best-effort:
``publish`` never raises.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

import redis.asyncio as aioredis
import structlog
from fastapi import Request

logger = structlog.get_logger()

# Redis channel names. The bridge subscribes to all three and fans out to sockets.
BROADCAST_CHANNEL = "ws:broadcast"
CATEGORY_CHANNEL_PREFIX = "ws:category:"
USER_CHANNEL_PREFIX = "ws:user:"


@dataclass(frozen=True)
class BroadcastEvent:
    """An event addressed to everyone, one category's subscribers, or one user."""

    event: str
    data: dict[str, Any] = field(default_factory=dict)
    category_id: int | None = None
    user_id: int | None = None

    @property
    def redis_channel(self) -> str:
        if self.user_id is not None:
            return f"{USER_CHANNEL_PREFIX}{self.user_id}"
        if self.category_id is not None:
            return f"{CATEGORY_CHANNEL_PREFIX}{self.category_id}"
        return BROADCAST_CHANNEL

    def to_json(self) -> str:
        return json.dumps({"event": self.event, "data": self.data})


def vote_update_event(nominee_id: int, vote_count: int, category_id: int) -> BroadcastEvent:
    return BroadcastEvent(
        event="vote:update",
        data={"nominee_id": nominee_id, "vote_count": vote_count, "category_id": category_id},
        category_id=category_id,
    )


def announcement_event(message: str, emotion: str | None = None) -> BroadcastEvent:
    return BroadcastEvent(event="chibi:announce", data={"message": message, "emotion": emotion})


def achievement_unlocked_event(user_id: int, slug: str, name: str, rarity: str) -> BroadcastEvent:
    return BroadcastEvent(
        event="achievement:unlocked",
        data={"slug": slug, "name": name, "rarity": rarity},
        user_id=user_id,
    )


class Broadcaster(Protocol):
    async def publish(self, event: BroadcastEvent) -> None: ...


class NullBroadcaster:
    """Drops every event. Used when no real-time backend is configured."""

    async def publish(self, event: BroadcastEvent) -> None:
        logger.debug("broadcast_dropped", event=event.event)


class RedisBroadcaster:
    """Publishes events to Redis pub/sub for the WebSocket bridge to deliver."""

    def __init__(self, redis_client: aioredis.Redis) -> None:
        self.redis = redis_client

    async def publish(self, event: BroadcastEvent) -> None:
        try:
            await self.redis.publish(event.redis_channel, event.to_json())
        except Exception:
            logger.warning("broadcast_failed", event=event.event, channel=event.redis_channel, exc_info=True)


def get_broadcaster(request: Request) -> Broadcaster:
    """FastAPI dependency returning the broadcaster created by the app lifespan."""
    broadcaster: Broadcaster | None = getattr(request.app.state, "broadcaster", None)
    if broadcaster is None:
        return NullBroadcaster()
    return broadcaster
