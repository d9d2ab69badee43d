"""Live socket registry.

Each socket belongs to one user and may watch any number of categories.
Delivery failures evict the socket.
"""

import json
import time
from collections import defaultdict
from dataclasses import dataclass, field

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()

CATEGORY_CHANNEL_PREFIX = "category:"


def category_channel(category_id: int) -> str:
    return f"{CATEGORY_CHANNEL_PREFIX}{category_id}"


def is_valid_channel(channel: str) -> bool:
    """Only ``category:<id>`` channels are subscribable."""
    if not channel.startswith(CATEGORY_CHANNEL_PREFIX):
        return False
    return channel[len(CATEGORY_CHANNEL_PREFIX):].isdigit()


@dataclass
class LiveSocket:
    websocket: WebSocket
    user_id: int
    watching: set[str] = field(default_factory=set)
    opened_at: float = field(default_factory=time.time)
    delivered: int = 0


class ConnectionManager:
    """Routes server events to live sockets.

    All mutation happens on the event loop, so no locking is needed.
    """

    def __init__(self, max_connections_per_user: int = 5) -> None:
        self.max_connections_per_user = max_connections_per_user
        self._sockets: dict[str, LiveSocket] = {}
        self._watchers: dict[str, set[str]] = defaultdict(set)
        self._by_user: dict[int, set[str]] = defaultdict(set)

    @property
    def connection_count(self) -> int:
        return len(self._sockets)

    def can_connect(self, user_id: int) -> bool:
        return len(self._by_user.get(user_id, ())) < self.max_connections_per_user

    async def connect(self, websocket: WebSocket, conn_id: str, user_id: int) -> None:
        """Accept the socket, then tell everyone the new head count."""
        await websocket.accept()
        self._sockets[conn_id] = LiveSocket(websocket=websocket, user_id=user_id)
        self._by_user[user_id].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id, user_id=user_id)
        await self.broadcast_all({"type": "user:joined", "user_count": self.connection_count})

    async def disconnect(self, conn_id: str) -> None:
        sock = self._sockets.pop(conn_id, None)
        if sock is None:
            return

        for channel in sock.watching:
            watchers = self._watchers.get(channel)
            if watchers is not None:
                watchers.discard(conn_id)
                if not watchers:
                    del self._watchers[channel]

        owned = self._by_user[sock.user_id]
        owned.discard(conn_id)
        if not owned:
            del self._by_user[sock.user_id]

        logger.info("ws_disconnected", conn_id=conn_id, user_id=sock.user_id, delivered=sock.delivered)
        await self.broadcast_all({"type": "user:left", "user_count": self.connection_count})

    async def subscribe(self, conn_id: str, channel: str) -> bool:
        """Start watching a category. False for unknown sockets or bad channel names."""
        sock = self._sockets.get(conn_id)
        if sock is None or not is_valid_channel(channel):
            return False

        sock.watching.add(channel)
        self._watchers[channel].add(conn_id)
        logger.debug("ws_subscribed", conn_id=conn_id, channel=channel)
        return True

    async def unsubscribe(self, conn_id: str, channel: str) -> bool:
        sock = self._sockets.get(conn_id)
        if sock is None:
            return False

        sock.watching.discard(channel)
        watchers = self._watchers.get(channel)
        if watchers is not None:
            watchers.discard(conn_id)
            if not watchers:
                del self._watchers[channel]
        return True

    async def _deliver(self, targets: list[str], channel: str, message: dict) -> int:
        frame = json.dumps({"channel": channel, "data": message})
        reached = 0
        dead: list[str] = []
        for conn_id in targets:
            sock = self._sockets.get(conn_id)
            if sock is None:
                continue
            try:
                await sock.websocket.send_text(frame)
            except Exception:
                logger.debug("ws_send_failed", conn_id=conn_id)
                dead.append(conn_id)
                continue
            sock.delivered += 1
            reached += 1

        for conn_id in dead:
            await self.disconnect(conn_id)
        return reached

    async def broadcast_to_channel(self, channel: str, message: dict) -> int:
        """Deliver to the watchers of one category channel. Returns how many were reached."""
        targets = list(self._watchers.get(channel, ()))
        if not targets:
            return 0
        return await self._deliver(targets, channel, message)

    async def broadcast_all(self, message: dict) -> int:
        return await self._deliver(list(self._sockets), "global", message)

    async def send_to_user(self, user_id: int, message: dict) -> int:
        """Deliver to every socket the user has open, whatever they watch."""
        return await self._deliver(list(self._by_user.get(user_id, ())), "user", message)

    def snapshot(self) -> dict[str, object]:
        """Counts for the readiness probe."""
        return {
            "connections": len(self._sockets),
            "users": len(self._by_user),
            "watchers": {channel: len(ids) for channel, ids in self._watchers.items()},
        }
