"""Registry of online users: display name -> live connection handle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from signaling.connection import ConnectionHandle
from signaling.errors import UnknownRecipientError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Identity:
    name: str
    connection: ConnectionHandle
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def public_fields(self) -> dict[str, str]:
        return {"username": self.name, "id": self.connection.id}


class UserRegistry:
    """Single source of truth for who is online.

    Also tracks every attached connection, joined or not, so that roster
    broadcasts reach clients that are still on the sign-in step.
    """

    def __init__(self) -> None:
        self._identities: dict[str, Identity] = {}
        self._connections: dict[str, ConnectionHandle] = {}

    def attach(self, connection: ConnectionHandle) -> None:
        self._connections[connection.id] = connection

    def detach(self, connection: ConnectionHandle) -> None:
        self._connections.pop(connection.id, None)

    def connections(self) -> list[ConnectionHandle]:
        return list(self._connections.values())

    def register(self, name: str, connection: ConnectionHandle) -> list[str]:
        """Bind `name` to `connection`, replacing any previous binding.

        A connection carries one name: joining again under a new name releases
        the old one. Returns the names whose earlier binding was displaced,
        either the connection's old name or `name` taken from another
        connection, so their calls can be ended.
        """

        if not name:
            raise ValueError("name may not be empty")

        displaced: list[str] = []
        previous = self.name_for(connection)
        if previous is not None and previous != name:
            del self._identities[previous]
            displaced.append(previous)
            LOGGER.info("Connection %s renamed %s -> %s", connection.id, previous, name)

        replaced = self._identities.pop(name, None)
        if replaced is not None and replaced.connection is not connection:
            displaced.append(name)
            LOGGER.info("Name %s taken over by connection %s", name, connection.id)

        self._identities[name] = Identity(name=name, connection=connection)
        self._connections.setdefault(connection.id, connection)
        return displaced

    def get(self, name: str) -> Identity | None:
        return self._identities.get(name)

    def lookup(self, name: str) -> ConnectionHandle:
        identity = self._identities.get(name)
        if identity is None:
            raise UnknownRecipientError(f"{name!r} is not online.")
        return identity.connection

    def name_for(self, connection: ConnectionHandle) -> str | None:
        for name, identity in self._identities.items():
            if identity.connection is connection:
                return name
        return None

    def unregister(self, connection: ConnectionHandle) -> str | None:
        name = self.name_for(connection)
        if name is not None:
            del self._identities[name]
        return name

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {name: identity.public_fields() for name, identity in self._identities.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._identities

    def __len__(self) -> int:
        return len(self._identities)
