"""Live results socket.

Clients authenticate with ``?token=<jwt>`` and then exchange JSON frames:

    -> {"action": "subscribe", "channel": "category:3"}
    -> {"action": "unsubscribe", "channel": "category:3"}
    -> {"action": "ping"}

Server events arrive wrapped as ``{"channel": ..., "data": {...}}`` where the
channel is ``category:<id>``, ``global`` or ``user``. Replies to client frames
are unwrapped: ``subscribed``, ``unsubscribed``, ``pong`` or ``error``.
"""

import json
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from isekai.auth.jwt import verify_token
from isekai.ws.manager import ConnectionManager

logger = structlog.get_logger()

router = APIRouter()

CLOSE_UNAUTHORIZED = 4001
CLOSE_TOO_MANY = 4008

Reply = dict[str, Any]
Handler = Callable[[ConnectionManager, str, dict[str, Any]], Awaitable[Reply]]


async def _subscribe(manager: ConnectionManager, conn_id: str, frame: dict[str, Any]) -> Reply:
    channel = str(frame.get("channel", ""))
    if await manager.subscribe(conn_id, channel):
        return {"type": "subscribed", "channel": channel}
    return {"type": "error", "message": f"Invalid channel: {channel}"}


async def _unsubscribe(manager: ConnectionManager, conn_id: str, frame: dict[str, Any]) -> Reply:
    channel = str(frame.get("channel", ""))
    await manager.unsubscribe(conn_id, channel)
    return {"type": "unsubscribed", "channel": channel}


async def _ping(manager: ConnectionManager, conn_id: str, frame: dict[str, Any]) -> Reply:  # noqa: ARG001
    return {"type": "pong"}


_HANDLERS: dict[str, Handler] = {
    "subscribe": _subscribe,
    "unsubscribe": _unsubscribe,
    "ping": _ping,
}


async def handle_frame(manager: ConnectionManager, conn_id: str, raw: str) -> Reply:
    """Turn one client text frame into the reply frame."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return {"type": "error", "message": "Invalid JSON"}
    if not isinstance(frame, dict):
        return {"type": "error", "message": "Frame must be a JSON object"}

    action = frame.get("action")
    handler = _HANDLERS.get(action) if isinstance(action, str) else None
    if handler is None:
        return {"type": "error", "message": f"Unknown action: {action}"}
    return await handler(manager, conn_id, frame)


@router.websocket("/ws")
async def results_socket(websocket: WebSocket, token: str = Query(...)) -> None:
    manager: ConnectionManager = websocket.app.state.ws_manager

    try:
        user_id = int(verify_token(token)["sub"])
    except Exception as exc:
        logger.info("ws_rejected", reason=str(exc))
        await websocket.close(code=CLOSE_UNAUTHORIZED, reason="Authentication failed")
        return

    if not manager.can_connect(user_id):
        await websocket.close(code=CLOSE_TOO_MANY, reason="Too many connections")
        return

    conn_id = uuid.uuid4().hex
    await manager.connect(websocket, conn_id, user_id)
    try:
        while True:
            reply = await handle_frame(manager, conn_id, await websocket.receive_text())
            await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("ws_error", conn_id=conn_id, user_id=user_id)
    finally:
        await manager.disconnect(conn_id)
