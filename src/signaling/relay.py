"""Signaling relay: routes client events between joined users.

Handlers are synchronous. They run one at a time on the hub's consumer task,
so the registry and the session tracker are never mutated concurrently.
Outbound delivery is `ConnectionHandle.send`, which never blocks.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from signaling.connection import ConnectionHandle
from signaling.errors import (
    MalformedEventError,
    NoActiveSessionError,
    SignalingError,
    UnknownSenderError,
)
from signaling.registry import UserRegistry
from signaling.schemas import (
    AnswerPayload,
    AuthAckPayload,
    EndCallPayload,
    OfferPayload,
    parse_call_pair,
    parse_display_name,
    parse_envelope,
    parse_payload,
)
from signaling.sessions import CallPhase, CallSession, CallSessionTracker

LOGGER = logging.getLogger(__name__)

Handler = Callable[[ConnectionHandle, Any], None]


@dataclass
class RelayStats:
    received: int = 0
    relayed: int = 0
    dropped: Counter[str] = field(default_factory=Counter)

    def as_dict(self) -> dict[str, Any]:
        return {"received": self.received, "relayed": self.relayed, "dropped": dict(self.dropped)}


class SignalingRelay:
    def __init__(
        self,
        registry: UserRegistry,
        tracker: CallSessionTracker,
        *,
        report_errors: bool = False,
        buffer_ice_while_ringing: bool = True,
        notify_peer_on_release: bool = False,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._report_errors = report_errors
        self._buffer_ice_while_ringing = buffer_ice_while_ringing
        self._notify_peer_on_release = notify_peer_on_release
        self.stats = RelayStats()
        self._handlers: dict[str, Handler] = {
            "join-user": self._on_join_user,
            "offer": self._on_offer,
            "auth-ack": self._on_auth_ack,
            "answer": self._on_answer,
            "icecandidate": self._on_icecandidate,
            "call-ended": self._on_call_ended,
            "end-call": self._on_end_call,
        }

    def dispatch_frame(self, connection: ConnectionHandle, frame: str | bytes) -> None:
        """Decode one raw `{"event", "data"}` text frame and dispatch it."""

        if not isinstance(frame, str):
            self.stats.received += 1
            self._drop(connection, None, MalformedEventError("Binary frames are not supported."))
            return

        try:
            envelope = parse_envelope(json.loads(frame))
        except json.JSONDecodeError:
            self.stats.received += 1
            self._drop(connection, None, MalformedEventError("Frame is not valid JSON."))
            return
        except MalformedEventError as exc:
            self.stats.received += 1
            self._drop(connection, None, exc)
            return

        self.dispatch(connection, envelope.event, envelope.data)

    def dispatch(self, connection: ConnectionHandle, event: str, data: Any) -> None:
        self.stats.received += 1
        handler = self._handlers.get(event)
        try:
            if handler is None:
                raise MalformedEventError(f"Unknown event {event!r}.")
            handler(connection, data)
        except SignalingError as exc:
            self._drop(connection, event, exc)

    def broadcast_roster(self) -> None:
        """Send the current online-user snapshot to every attached connection."""

        snapshot = self._registry.snapshot()
        for connection in self._registry.connections():
            connection.send("joined", snapshot)
        LOGGER.debug("Broadcast roster of %d user(s)", len(snapshot))

    def end_calls_for(self, name: str) -> list[CallSession]:
        """End every call `name` is part of once its binding is gone.

        The surviving party is told with `call-ended` only when peer
        notification is enabled.
        """

        ended = self._tracker.end_all_for(name)
        for session in ended:
            if not self._notify_peer_on_release:
                continue
            peer = self._registry.get(session.peer_of(name))
            if peer is not None:
                peer.connection.send("call-ended", list(session.pair))
                self.stats.relayed += 1
        return ended

    def _deliver(self, name: str, event: str, data: Any) -> None:
        connection = self._registry.lookup(name)
        connection.send(event, data)
        self.stats.relayed += 1
        LOGGER.debug("Relayed %s to %s", event, name)

    def _require_joined(self, name: str) -> None:
        if name not in self._registry:
            raise UnknownSenderError(f"{name!r} has not joined.")

    def _drop(self, connection: ConnectionHandle, event: str | None, exc: SignalingError) -> None:
        self.stats.dropped[exc.code] += 1
        LOGGER.warning("Dropped %s from %s (%s): %s", event or "frame", connection.id, exc.code, exc.detail)
        if self._report_errors:
            connection.send("error", {"code": exc.code, "detail": exc.detail, "event": event})

    def _on_join_user(self, connection: ConnectionHandle, data: Any) -> None:
        name = parse_display_name(data)
        displaced = self._registry.register(name, connection)
        LOGGER.info("%s joined on connection %s", name, connection.id)
        for released in displaced:
            self.end_calls_for(released)
        self.broadcast_roster()

    def _on_offer(self, connection: ConnectionHandle, data: Any) -> None:
        payload = parse_payload(OfferPayload, data)
        callee_connection = self._registry.lookup(payload.to)
        self._require_joined(payload.from_)

        self._tracker.start(payload.from_, payload.to, payload.offer)
        callee_connection.send("auth-request", {"from": payload.from_})
        self.stats.relayed += 1

    def _on_auth_ack(self, connection: ConnectionHandle, data: Any) -> None:
        # `from` is the original caller, `to` the callee answering the ring.
        payload = parse_payload(AuthAckPayload, data)
        caller, callee = payload.from_, payload.to

        if not payload.accepted:
            self._tracker.reject(caller, callee)
            LOGGER.info("%s rejected the call from %s", callee, caller)
            self._deliver(caller, "call-rejected", {"from": caller, "to": callee})
            return

        callee_connection = self._registry.lookup(callee)
        offer, candidates = self._tracker.accept(caller, callee)
        callee_connection.send("offer", {"from": caller, "to": callee, "offer": offer})
        for candidate in candidates:
            callee_connection.send("icecandidate", candidate)
        self.stats.relayed += 1 + len(candidates)

    def _on_answer(self, connection: ConnectionHandle, data: Any) -> None:
        # The answer travels back to the caller, named by `from`.
        payload = parse_payload(AnswerPayload, data)
        caller_connection = self._registry.lookup(payload.from_)

        self._tracker.activate(payload.from_, payload.to)
        caller_connection.send("answer", {"from": payload.from_, "to": payload.to, "answer": payload.answer})
        self.stats.relayed += 1

    def _on_icecandidate(self, connection: ConnectionHandle, data: Any) -> None:
        if data is None:
            raise MalformedEventError("ICE candidate may not be empty.")

        name = self._registry.name_for(connection)
        if name is None:
            raise UnknownSenderError("Connection has not joined.")
        session = self._tracker.session_for(name)
        if session is None:
            raise NoActiveSessionError(f"{name!r} is not in a call.")

        if (
            self._buffer_ice_while_ringing
            and session.phase is CallPhase.RINGING
            and name == session.caller
        ):
            if not self._tracker.buffer_candidate(session, data):
                LOGGER.warning("Candidate buffer full for %s -> %s", session.caller, session.callee)
            return

        self._deliver(session.peer_of(name), "icecandidate", data)

    def _on_call_ended(self, connection: ConnectionHandle, data: Any) -> None:
        pair = parse_call_pair(data)
        if self._tracker.end(*pair) is None:
            LOGGER.debug("call-ended for %s without a tracked call", pair)

        for name in dict.fromkeys(pair):
            identity = self._registry.get(name)
            if identity is None:
                LOGGER.debug("%s already gone; not notifying call-ended", name)
                continue
            identity.connection.send("call-ended", list(pair))
            self.stats.relayed += 1

    def _on_end_call(self, connection: ConnectionHandle, data: Any) -> None:
        # Reserved: the reference client never emits it.
        payload = parse_payload(EndCallPayload, data)
        self._tracker.end(payload.from_, payload.to)
        self._deliver(payload.to, "end-call", {"from": payload.from_, "to": payload.to})
