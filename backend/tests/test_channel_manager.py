"""Tests for the WebSocket channel manager."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from coderunner.core.channel_manager import ExecutionChannelManager


def make_websocket():
    websocket = MagicMock()
    websocket.send_json = AsyncMock()
    websocket.close = AsyncMock()
    return websocket


def sent(websocket):
    return [c.args[0] for c in websocket.send_json.await_args_list]


class TestExecutionChannelManager:
    """Tests for ExecutionChannelManager."""

    @pytest.mark.asyncio
    async def test_events_delivered_in_order_then_closed(self):
        """Events from a worker thread arrive in emission order before the close."""
        manager = ExecutionChannelManager()
        websocket = make_websocket()
        channel = manager.register("run-1", websocket)
        sender = asyncio.create_task(channel.pump())

        def worker():
            manager.send("run-1", "status", "RUNNING")
            for i in range(50):
                manager.send("run-1", "stdout", f"line {i}\n")
            manager.send("run-1", "exit", "0")
            manager.send("run-1", "status", "FINISHED")
            manager.close("run-1")

        await asyncio.to_thread(worker)
        await asyncio.wait_for(sender, timeout=2)

        messages = sent(websocket)
        assert messages[0] == {"type": "status", "data": "RUNNING"}
        assert [m["data"] for m in messages[1:51]] == [f"line {i}\n" for i in range(50)]
        assert messages[-2:] == [
            {"type": "exit", "data": "0"},
            {"type": "status", "data": "FINISHED"},
        ]
        websocket.close.assert_awaited_once()
        assert not manager.is_connected("run-1")

    def test_send_without_channel_is_dropped(self):
        manager = ExecutionChannelManager()

        manager.send("nobody", "stdout", "x")
        manager.close("nobody")

    @pytest.mark.asyncio
    async def test_new_attachment_replaces_old(self):
        """Only the newest channel receives events; the older one is closed."""
        manager = ExecutionChannelManager()
        first, second = make_websocket(), make_websocket()

        old = manager.register("run-1", first)
        old_sender = asyncio.create_task(old.pump())
        new = manager.register("run-1", second)
        new_sender = asyncio.create_task(new.pump())

        manager.send("run-1", "stdout", "hello")
        manager.close("run-1")
        await asyncio.wait_for(asyncio.gather(old_sender, new_sender), timeout=2)

        assert sent(first) == []
        first.close.assert_awaited_once()
        assert sent(second) == [{"type": "stdout", "data": "hello"}]

    @pytest.mark.asyncio
    async def test_unregister_only_current_channel(self):
        manager = ExecutionChannelManager()
        old = manager.register("run-1", make_websocket())
        new = manager.register("run-1", make_websocket())

        manager.unregister("run-1", old)
        assert manager.get("run-1") is new

        manager.unregister("run-1", new)
        assert manager.get("run-1") is None

    @pytest.mark.asyncio
    async def test_sender_stops_when_client_is_gone(self):
        """A failed send ends the sender without raising."""
        manager = ExecutionChannelManager()
        websocket = make_websocket()
        websocket.send_json.side_effect = RuntimeError("websocket closed")
        channel = manager.register("run-1", websocket)
        sender = asyncio.create_task(channel.pump())

        manager.send("run-1", "stdout", "x")
        await asyncio.wait_for(sender, timeout=2)

        assert sender.exception() is None
