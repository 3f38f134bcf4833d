from __future__ import annotations

import pytest

from signaling.errors import InvalidPhaseTransitionError, NoPendingOfferError, ParticipantBusyError
from signaling.sessions import CallPhase, CallSessionTracker

OFFER = {"type": "offer", "sdp": "v=0"}


def test_full_lifecycle_moves_through_explicit_phases():
    tracker = CallSessionTracker()

    session = tracker.start("alice", "bob", OFFER)
    assert session.phase is CallPhase.RINGING
    assert session.pending_offer == OFFER

    offer, candidates = tracker.accept("alice", "bob")
    assert offer == OFFER
    assert candidates == []
    assert session.phase is CallPhase.NEGOTIATING
    assert session.pending_offer is None

    tracker.activate("alice", "bob")
    assert session.phase is CallPhase.ACTIVE

    ended = tracker.end("bob", "alice")
    assert ended is session
    assert ended.phase is CallPhase.ENDED
    assert tracker.get("alice", "bob") is None
    assert len(tracker) == 0


def test_accept_twice_is_rejected():
    tracker = CallSessionTracker()
    tracker.start("alice", "bob", OFFER)
    tracker.accept("alice", "bob")

    with pytest.raises(InvalidPhaseTransitionError):
        tracker.accept("alice", "bob")


def test_accept_without_offer_raises_no_pending_offer():
    tracker = CallSessionTracker()
    session = tracker.start("alice", "bob", OFFER)
    session.pending_offer = None

    with pytest.raises(NoPendingOfferError):
        tracker.accept("alice", "bob")


def test_activate_requires_negotiating():
    tracker = CallSessionTracker()
    with pytest.raises(InvalidPhaseTransitionError):
        tracker.activate("alice", "bob")

    tracker.start("alice", "bob", OFFER)
    with pytest.raises(InvalidPhaseTransitionError):
        tracker.activate("alice", "bob")


def test_reject_clears_session_and_offer():
    tracker = CallSessionTracker()
    session = tracker.start("alice", "bob", OFFER)

    tracker.reject("alice", "bob")

    assert session.pending_offer is None
    assert tracker.get("alice", "bob") is None
    with pytest.raises(InvalidPhaseTransitionError):
        tracker.accept("alice", "bob")


def test_busy_participants_cannot_be_rung():
    tracker = CallSessionTracker()
    tracker.start("alice", "bob", OFFER)

    with pytest.raises(ParticipantBusyError):
        tracker.start("carol", "bob", OFFER)
    with pytest.raises(ParticipantBusyError):
        tracker.start("alice", "carol", OFFER)


def test_repeated_offer_while_ringing_replaces_held_offer():
    tracker = CallSessionTracker()
    tracker.start("alice", "bob", OFFER)
    session = tracker.start("alice", "bob", {"sdp": "v=1"})

    assert session.pending_offer == {"sdp": "v=1"}
    assert len(tracker) == 1


def test_offer_on_established_call_is_rejected():
    tracker = CallSessionTracker()
    tracker.start("alice", "bob", OFFER)
    tracker.accept("alice", "bob")

    with pytest.raises(InvalidPhaseTransitionError):
        tracker.start("alice", "bob", OFFER)


def test_calling_yourself_is_rejected():
    with pytest.raises(InvalidPhaseTransitionError):
        CallSessionTracker().start("alice", "alice", OFFER)


def test_candidate_buffer_is_bounded_and_flushed_on_accept():
    tracker = CallSessionTracker(max_buffered_candidates=2)
    session = tracker.start("alice", "bob", OFFER)

    assert tracker.buffer_candidate(session, {"candidate": "a"})
    assert tracker.buffer_candidate(session, {"candidate": "b"})
    assert not tracker.buffer_candidate(session, {"candidate": "c"})

    _, candidates = tracker.accept("alice", "bob")
    assert candidates == [{"candidate": "a"}, {"candidate": "b"}]
    assert session.pending_candidates == []


def test_end_all_for_drops_every_call_of_name():
    tracker = CallSessionTracker()
    tracker.start("alice", "bob", OFFER)
    tracker.start("carol", "dave", OFFER)

    ended = tracker.end_all_for("bob")

    assert [s.pair for s in ended] == [("alice", "bob")]
    assert tracker.session_for("alice") is None
    assert tracker.session_for("carol") is not None


def test_peer_of():
    session = CallSessionTracker().start("alice", "bob", OFFER)
    assert session.peer_of("alice") == "bob"
    assert session.peer_of("bob") == "alice"
    with pytest.raises(ValueError):
        session.peer_of("carol")
