"""Per-client connection handles.

The relay only ever talks to a handle through `id` and `send()`. `send()` never
blocks: it puts the event on a bounded outbox that a writer task drains to the
socket, so a slow client cannot stall the single event consumer.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Protocol

from fastapi import WebSocket, WebSocketDisconnect

LOGGER = logging.getLogger(__name__)


class ConnectionHandle(Protocol):
    id: str

    def send(self, event: str, data: Any) -> None: ...


class ClientConnection:
    """WebSocket-backed connection with a fire-and-forget outbox."""

    def __init__(self, websocket: WebSocket, *, queue_size: int = 256) -> None:
        self.id = uuid.uuid4().hex
        self._websocket = websocket
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"ClientConnection(id={self.id!r})"

    def send(self, event: str, data: Any) -> None:
        try:
            self._outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            LOGGER.warning("Outbox full for connection %s; dropping %s", self.id, event)

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop(), name=f"writer-{self.id}")

    async def close(self) -> None:
        if self._writer is None:
            return
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self._websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError):
                # Socket already gone; the receive loop reports the disconnect.
                LOGGER.debug("Writer for %s stopped: socket closed", self.id)
                return
