"""Bridges Redis pub/sub to WebSocket clients.

Subscribes to the channels written by ``RedisBroadcaster`` and fans messages
out through the connection manager, so every API process delivers events
published by any other process.
"""

import asyncio
import json

import redis.asyncio as aioredis
import structlog

from isekai.ws.broadcaster import BROADCAST_CHANNEL, CATEGORY_CHANNEL_PREFIX, USER_CHANNEL_PREFIX
from isekai.ws.manager import ConnectionManager, category_channel

logger = structlog.get_logger()

PATTERNS = (f"{CATEGORY_CHANNEL_PREFIX}*", f"{USER_CHANNEL_PREFIX}*")


class PubSubBridge:
    """Subscribes to Redis pub/sub and pushes messages to WebSocket clients."""

    def __init__(self, redis_client: aioredis.Redis, manager: ConnectionManager) -> None:
        self.redis = redis_client
        self.manager = manager
        self._running = False

    async def dispatch(self, redis_channel: str, raw: str | bytes) -> int:
        """Deliver one pub/sub message. Returns the number of sockets reached."""
        try:
            if isinstance(raw, bytes):
                raw = raw.decode()
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("pubsub_invalid_message", channel=redis_channel)
            return 0

        message = {"type": payload.get("event", "notification"), **payload.get("data", {})}

        if redis_channel == BROADCAST_CHANNEL:
            return await self.manager.broadcast_all(message)

        prefix, _, suffix = redis_channel.rpartition(":")
        try:
            target_id = int(suffix)
        except ValueError:
            logger.warning("pubsub_invalid_channel", channel=redis_channel)
            return 0

        if f"{prefix}:" == CATEGORY_CHANNEL_PREFIX:
            return await self.manager.broadcast_to_channel(category_channel(target_id), message)
        if f"{prefix}:" == USER_CHANNEL_PREFIX:
            return await self.manager.send_to_user(target_id, message)

        logger.warning("pubsub_unknown_channel", channel=redis_channel)
        return 0

    async def start(self) -> None:
        """Start listening to Redis pub/sub channels."""
        self._running = True
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(BROADCAST_CHANNEL)
        await pubsub.psubscribe(*PATTERNS)
        logger.info("pubsub_bridge_started", channels=[BROADCAST_CHANNEL], patterns=list(PATTERNS))

        try:
            while self._running:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None:
                    continue

                redis_channel = message.get("channel", "")
                if isinstance(redis_channel, bytes):
                    redis_channel = redis_channel.decode()

                sent = await self.dispatch(redis_channel, message.get("data", b""))
                if sent > 0:
                    logger.debug("pubsub_delivered", channel=redis_channel, recipients=sent)

        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.unsubscribe()
            await pubsub.punsubscribe()
            await pubsub.aclose()
            logger.info("pubsub_bridge_stopped")

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False
