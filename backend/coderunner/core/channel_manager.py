"""
WebSocket channel manager for run event streaming.

Runs execute on worker threads while WebSockets live on the event loop.
Each attached channel owns a queue drained by a single sender task, so
events from any thread are delivered in the order they were emitted and
the emitting thread never waits on the network.
"""

import asyncio
import logging
import threading
from typing import Dict, Optional

from fastapi import WebSocket

from coderunner.core.executor.base import EventSink

logger = logging.getLogger(__name__)

# Queue marker asking the sender to close the socket
_CLOSE = object()


class ExecutionChannel:
    """One client connection bound to a run."""

    def __init__(self, run_id: str, websocket: WebSocket, loop: asyncio.AbstractEventLoop):
        self.run_id = run_id
        self.websocket = websocket
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closing = False

    def post(self, message: dict) -> None:
        """Enqueue a message from any thread."""
        self._enqueue(message)

    def request_close(self) -> None:
        if not self._closing:
            self._closing = True
            self._enqueue(_CLOSE)

    def _enqueue(self, item) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Event loop already closed; nobody is listening
            logger.debug(f"[{self.run_id}] channel loop closed, dropping message")

    async def pump(self) -> None:
        """Send queued messages until closed or the client goes away."""
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                try:
                    await self.websocket.close()
                except (RuntimeError, OSError) as e:
                    logger.debug(f"[{self.run_id}] close on dead socket: {e}")
                return
            try:
                await self.websocket.send_json(item)
            except Exception as e:
                logger.debug(f"[{self.run_id}] client gone, stopping sender: {e}")
                return


class ExecutionChannelManager(EventSink):
    """Keeps at most one channel per run and implements the run event sink."""

    def __init__(self):
        self._channels: Dict[str, ExecutionChannel] = {}
        self._lock = threading.Lock()

    def register(self, run_id: str, websocket: WebSocket) -> ExecutionChannel:
        """Bind a connected WebSocket to a run, replacing any previous one. Call on the event loop."""
        channel = ExecutionChannel(run_id, websocket, asyncio.get_running_loop())
        with self._lock:
            previous = self._channels.get(run_id)
            self._channels[run_id] = channel
        if previous is not None:
            previous.request_close()
        logger.info(f"[WS] channel attached for run: {run_id}")
        return channel

    def unregister(self, run_id: str, channel: ExecutionChannel) -> None:
        """Forget ``channel`` if it is still the run's current one."""
        with self._lock:
            if self._channels.get(run_id) is channel:
                del self._channels[run_id]
                logger.info(f"[WS] channel detached for run: {run_id}")

    def get(self, run_id: str) -> Optional[ExecutionChannel]:
        with self._lock:
            return self._channels.get(run_id)

    def is_connected(self, run_id: str) -> bool:
        return self.get(run_id) is not None

    def send(self, run_id: str, event_type: str, data: str) -> None:
        channel = self.get(run_id)
        if channel is None:
            return
        channel.post({"type": event_type, "data": data})

    def close(self, run_id: str) -> None:
        with self._lock:
            channel = self._channels.pop(run_id, None)
        if channel is not None:
            channel.request_close()


_channel_manager: Optional[ExecutionChannelManager] = None


def get_channel_manager() -> ExecutionChannelManager:
    """Get global channel manager instance."""
    global _channel_manager
    if _channel_manager is None:
        _channel_manager = ExecutionChannelManager()
    return _channel_manager
