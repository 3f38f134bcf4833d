"""WebSocket endpoint speaking the browser signaling protocol.

Frames in both directions are JSON objects `{"event": <name>, "data": <payload>}`.
The receive loop only forwards raw frames to the hub, binary ones included;
decoding, validation and routing happen on the hub's single consumer task.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket

from api.dependencies import get_hub
from config.settings import get_settings
from signaling.connection import ClientConnection
from signaling.hub import SignalingHub

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/signaling", tags=["signaling"])


@router.websocket("/ws")
async def signaling_socket(websocket: WebSocket, hub: SignalingHub = Depends(get_hub)) -> None:
    await websocket.accept()
    connection = ClientConnection(websocket, queue_size=get_settings().outbound_queue_size)
    connection.start()
    hub.connect(connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                LOGGER.debug("Socket for connection %s closed", connection.id)
                break
            text = message.get("text")
            hub.submit(connection, text if text is not None else message.get("bytes") or b"")
    finally:
        hub.disconnect(connection)
        await connection.close()
