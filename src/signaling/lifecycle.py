from __future__ import annotations

import logging

from signaling.connection import ConnectionHandle
from signaling.registry import UserRegistry
from signaling.relay import SignalingRelay

LOGGER = logging.getLogger(__name__)


class ConnectionLifecycleManager:
    """Attaches new connections and cleans up after lost ones."""

    def __init__(self, registry: UserRegistry, relay: SignalingRelay) -> None:
        self._registry = registry
        self._relay = relay

    def connect(self, connection: ConnectionHandle) -> None:
        self._registry.attach(connection)
        LOGGER.info("Connection %s attached", connection.id)

    def disconnect(self, connection: ConnectionHandle) -> str | None:
        """Forget `connection`; returns the name it held, if any."""

        self._registry.detach(connection)
        name = self._registry.unregister(connection)
        if name is None:
            LOGGER.info("Connection %s detached before joining", connection.id)
            return None

        LOGGER.info("%s left (connection %s)", name, connection.id)
        self._relay.end_calls_for(name)
        self._relay.broadcast_roster()
        return name
