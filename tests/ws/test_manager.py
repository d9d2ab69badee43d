"""Unit tests for the WebSocket ConnectionManager."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from isekai.ws.manager import ConnectionManager, category_channel, is_valid_channel


@pytest.fixture
def mgr() -> ConnectionManager:
    return ConnectionManager(max_connections_per_user=2)


def _make_ws(*, fail_send: bool = False) -> MagicMock:
    ws = AsyncMock()
    ws.accept = AsyncMock()
    if fail_send:
        ws.send_text = AsyncMock(side_effect=RuntimeError("connection closed"))
    else:
        ws.send_text = AsyncMock()
    return ws


def _sent(ws: MagicMock) -> list[dict]:
    return [json.loads(call.args[0]) for call in ws.send_text.await_args_list]


class TestChannels:
    def test_category_channel(self) -> None:
        assert category_channel(7) == "category:7"

    @pytest.mark.parametrize(
        ("channel", "valid"),
        [("category:1", True), ("category:42", True), ("category:", False), ("category:x", False), ("mining", False)],
    )
    def test_validation(self, channel: str, valid: bool) -> None:
        assert is_valid_channel(channel) is valid


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_announces_user_count(self, mgr: ConnectionManager) -> None:
        ws = _make_ws()
        await mgr.connect(ws, "conn-1", user_id=42)
        ws.accept.assert_awaited_once()
        assert mgr.connection_count == 1
        assert _sent(ws) == [{"channel": "global", "data": {"type": "user:joined", "user_count": 1}}]

    @pytest.mark.asyncio
    async def test_per_user_limit(self, mgr: ConnectionManager) -> None:
        await mgr.connect(_make_ws(), "conn-1", user_id=42)
        await mgr.connect(_make_ws(), "conn-2", user_id=42)
        assert not mgr.can_connect(42)
        assert mgr.can_connect(43)


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_cleans_up(self, mgr: ConnectionManager) -> None:
        watcher = _make_ws()
        await mgr.connect(watcher, "watcher", user_id=1)
        await mgr.connect(_make_ws(), "conn-1", user_id=42)
        await mgr.subscribe("conn-1", "category:3")

        await mgr.disconnect("conn-1")

        assert mgr.connection_count == 1
        assert "category:3" not in mgr.snapshot()["watchers"]
        assert _sent(watcher)[-1]["data"] == {"type": "user:left", "user_count": 1}

    @pytest.mark.asyncio
    async def test_disconnect_nonexistent(self, mgr: ConnectionManager) -> None:
        await mgr.disconnect("nope")
        assert mgr.connection_count == 0


class TestFanOut:
    @pytest.mark.asyncio
    async def test_category_broadcast_reaches_subscribers_only(self, mgr: ConnectionManager) -> None:
        subscribed, other = _make_ws(), _make_ws()
        await mgr.connect(subscribed, "a", user_id=1)
        await mgr.connect(other, "b", user_id=2)
        assert await mgr.subscribe("a", "category:3")
        subscribed.send_text.reset_mock()
        other.send_text.reset_mock()

        sent = await mgr.broadcast_to_channel("category:3", {"type": "vote:update", "nominee_id": 9})

        assert sent == 1
        assert _sent(subscribed) == [{"channel": "category:3", "data": {"type": "vote:update", "nominee_id": 9}}]
        other.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_subscription_rejected(self, mgr: ConnectionManager) -> None:
        await mgr.connect(_make_ws(), "a", user_id=1)
        assert not await mgr.subscribe("a", "mining")

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self, mgr: ConnectionManager) -> None:
        ws = _make_ws()
        await mgr.connect(ws, "a", user_id=1)
        await mgr.subscribe("a", "category:3")
        await mgr.unsubscribe("a", "category:3")
        assert await mgr.broadcast_to_channel("category:3", {"type": "vote:update"}) == 0

    @pytest.mark.asyncio
    async def test_send_to_user_hits_every_connection(self, mgr: ConnectionManager) -> None:
        first, second, stranger = _make_ws(), _make_ws(), _make_ws()
        await mgr.connect(first, "a", user_id=5)
        await mgr.connect(second, "b", user_id=5)
        await mgr.connect(stranger, "c", user_id=6)
        stranger.send_text.reset_mock()

        sent = await mgr.send_to_user(5, {"type": "achievement:unlocked", "slug": "first-vote"})

        assert sent == 2
        assert _sent(first)[-1] == {"channel": "user", "data": {"type": "achievement:unlocked", "slug": "first-vote"}}
        stranger.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_send_drops_connection(self, mgr: ConnectionManager) -> None:
        healthy = _make_ws()
        await mgr.connect(healthy, "ok", user_id=1)
        broken = _make_ws(fail_send=True)
        await mgr.connect(broken, "dead", user_id=2)

        await mgr.broadcast_all({"type": "chibi:announce", "message": "hi"})

        assert mgr.connection_count == 1
        assert mgr.snapshot()["users"] == 1
