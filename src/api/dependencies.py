"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.requests import HTTPConnection

if TYPE_CHECKING:  # pragma: no cover
    from signaling.hub import SignalingHub


def get_hub(connection: HTTPConnection) -> SignalingHub:
    # Works for both HTTP requests and WebSocket handshakes.
    return connection.app.state.hub
