"""Call session tracking with an explicit phase per (caller, callee) pair."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from signaling.errors import InvalidPhaseTransitionError, NoPendingOfferError, ParticipantBusyError

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallPhase(str, enum.Enum):
    IDLE = "idle"
    RINGING = "ringing"
    NEGOTIATING = "negotiating"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class CallSession:
    """One in-progress call.

    The held offer and the candidate buffer only live while the session is
    `RINGING`; both are emptied when the callee accepts.
    """

    caller: str
    callee: str
    phase: CallPhase = CallPhase.RINGING
    pending_offer: Any = None
    pending_candidates: list[Any] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.caller, self.callee)

    def involves(self, name: str) -> bool:
        return name in (self.caller, self.callee)

    def peer_of(self, name: str) -> str:
        if name == self.caller:
            return self.callee
        if name == self.callee:
            return self.caller
        raise ValueError(f"{name!r} is not part of call {self.pair}")

    def transition(self, phase: CallPhase) -> None:
        LOGGER.info("Call %s -> %s: %s -> %s", self.caller, self.callee, self.phase.value, phase.value)
        self.phase = phase
        self.updated_at = _utcnow()


class CallSessionTracker:
    def __init__(self, *, max_buffered_candidates: int = 64) -> None:
        self._sessions: dict[tuple[str, str], CallSession] = {}
        self._max_buffered_candidates = max_buffered_candidates

    def sessions(self) -> list[CallSession]:
        return list(self._sessions.values())

    def get(self, caller: str, callee: str) -> CallSession | None:
        return self._sessions.get((caller, callee))

    def session_for(self, name: str) -> CallSession | None:
        for session in self._sessions.values():
            if session.involves(name):
                return session
        return None

    def start(self, caller: str, callee: str, offer: Any) -> CallSession:
        """Open a ringing session, or refresh the held offer of one already ringing."""

        if caller == callee:
            raise InvalidPhaseTransitionError("Cannot call yourself.")

        existing = self.get(caller, callee)
        if existing is not None:
            if existing.phase is not CallPhase.RINGING:
                raise InvalidPhaseTransitionError(
                    f"Call {caller} -> {callee} is already {existing.phase.value}."
                )
            existing.pending_offer = offer
            existing.updated_at = _utcnow()
            return existing

        for name in (caller, callee):
            busy = self.session_for(name)
            if busy is not None:
                raise ParticipantBusyError(f"{name!r} is already in a call.")

        session = CallSession(caller=caller, callee=callee, pending_offer=offer)
        self._sessions[session.pair] = session
        LOGGER.info("Call %s -> %s: idle -> ringing", caller, callee)
        return session

    def _require(self, caller: str, callee: str, phase: CallPhase) -> CallSession:
        session = self.get(caller, callee)
        if session is None:
            raise InvalidPhaseTransitionError(f"No call {caller} -> {callee}.")
        if session.phase is not phase:
            raise InvalidPhaseTransitionError(
                f"Call {caller} -> {callee} is {session.phase.value}, expected {phase.value}."
            )
        return session

    def accept(self, caller: str, callee: str) -> tuple[Any, list[Any]]:
        """Move RINGING -> NEGOTIATING and hand back the held offer and candidates."""

        session = self._require(caller, callee, CallPhase.RINGING)
        if session.pending_offer is None:
            raise NoPendingOfferError(f"No offer held for {caller} -> {callee}.")

        offer, candidates = session.pending_offer, session.pending_candidates
        session.pending_offer = None
        session.pending_candidates = []
        session.transition(CallPhase.NEGOTIATING)
        return offer, candidates

    def reject(self, caller: str, callee: str) -> CallSession:
        session = self._require(caller, callee, CallPhase.RINGING)
        return self._discard(session)

    def activate(self, caller: str, callee: str) -> CallSession:
        session = self._require(caller, callee, CallPhase.NEGOTIATING)
        session.transition(CallPhase.ACTIVE)
        return session

    def buffer_candidate(self, session: CallSession, candidate: Any) -> bool:
        """Hold a candidate until the offer is relayed. False when the buffer is full."""

        if session.phase is not CallPhase.RINGING:
            raise InvalidPhaseTransitionError("Candidates are only held while ringing.")
        if len(session.pending_candidates) >= self._max_buffered_candidates:
            return False
        session.pending_candidates.append(candidate)
        return True

    def end(self, a: str, b: str) -> CallSession | None:
        """Drop the session between `a` and `b`, in either order."""

        session = self.get(a, b) or self.get(b, a)
        if session is None:
            return None
        return self._discard(session)

    def end_all_for(self, name: str) -> list[CallSession]:
        ended = [session for session in self._sessions.values() if session.involves(name)]
        for session in ended:
            self._discard(session)
        return ended

    def _discard(self, session: CallSession) -> CallSession:
        self._sessions.pop(session.pair, None)
        session.pending_offer = None
        session.pending_candidates = []
        session.transition(CallPhase.ENDED)
        return session

    def __len__(self) -> int:
        return len(self._sessions)
