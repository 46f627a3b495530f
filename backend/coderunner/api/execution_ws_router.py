"""
Run streaming WebSocket endpoint.

Protocol:
- Client sends: {"type": "input", "data": "..."}
- Client sends: {"type": "stop"}
- Server sends: {"type": "status" | "stdout" | "stderr" | "exit" | "error", "data": "..."}

Anything else the client sends is ignored. The server closes the socket
once the run has been torn down. Disconnecting does not stop the run.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from coderunner.core.channel_manager import ExecutionChannelManager, get_channel_manager
from coderunner.service import ExecutionService, get_execution_service

logger = logging.getLogger(__name__)

execution_ws_router = APIRouter(tags=["execution"])


def _parse_message(raw: str) -> Optional[dict]:
    try:
        message = json.loads(raw)
    except ValueError:
        return None
    return message if isinstance(message, dict) else None


async def _forward_input(service: ExecutionService, run_id: str, inputs: asyncio.Queue) -> None:
    """Feed client input to the run in arrival order, off the receive loop."""
    while True:
        data = await inputs.get()
        await asyncio.to_thread(service.send_input, run_id, data)


@execution_ws_router.websocket("/ws/run/{run_id}")
async def run_channel(
    websocket: WebSocket,
    run_id: str,
    service: ExecutionService = Depends(get_execution_service),
    channels: ExecutionChannelManager = Depends(get_channel_manager),
):
    await websocket.accept()
    logger.info(f"[WS] Connection accepted for run: {run_id}")

    channel = channels.register(run_id, websocket)
    sender = asyncio.create_task(channel.pump())

    if not service.announce_status(run_id):
        # Already torn down (or never existed): report how it ended and hang up
        channels.close(run_id)
        await sender
        return

    # Input can block on a full stdin pipe; stop must still get through
    inputs: asyncio.Queue = asyncio.Queue()
    forwarder = asyncio.create_task(_forward_input(service, run_id, inputs))

    try:
        while True:
            message = _parse_message(await websocket.receive_text())
            if message is None:
                continue

            message_type = message.get("type")
            if message_type == "input":
                data = message.get("data")
                if isinstance(data, str):
                    inputs.put_nowait(data)
            elif message_type == "stop":
                logger.info(f"[WS] Stop requested for run: {run_id}")
                await asyncio.to_thread(service.stop, run_id)

    except WebSocketDisconnect:
        logger.info(f"[WS] Client disconnected: {run_id}")
    finally:
        forwarder.cancel()
        channels.unregister(run_id, channel)
        if not sender.done():
            sender.cancel()
