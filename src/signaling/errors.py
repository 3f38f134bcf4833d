"""Domain-specific exceptions for signaling operations.

Every failure the relay can hit is classified here. None of them is fatal to
the process: the relay catches `SignalingError` at its boundary, logs and
counts it, and optionally reports it back to the sender.
"""

from __future__ import annotations


class SignalingError(Exception):
    code: str = "signaling_error"
    default_detail: str = "Signaling error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class MalformedEventError(SignalingError):
    code = "malformed_event"
    default_detail = "Event payload is malformed."


class UnknownRecipientError(SignalingError):
    code = "unknown_recipient"
    default_detail = "Recipient is not online."


class UnknownSenderError(SignalingError):
    code = "unknown_sender"
    default_detail = "Sender has not joined."


class NoPendingOfferError(SignalingError):
    code = "no_pending_offer"
    default_detail = "No offer is waiting for this call."


class InvalidPhaseTransitionError(SignalingError):
    code = "invalid_phase_transition"
    default_detail = "Event is not valid in the current call phase."


class ParticipantBusyError(InvalidPhaseTransitionError):
    code = "participant_busy"
    default_detail = "Participant is already in a call."


class NoActiveSessionError(InvalidPhaseTransitionError):
    code = "no_active_session"
    default_detail = "Sender is not in a call."
