from __future__ import annotations

import asyncio
import json

from conftest import FakeConnection
from signaling.connection import ClientConnection


def _frame(event: str, data) -> str:
    return json.dumps({"event": event, "data": data})


def test_hub_processes_events_in_arrival_order(make_hub):
    async def _scenario():
        hub = make_hub()
        await hub.start()
        alice, bob = FakeConnection("a"), FakeConnection("b")

        hub.connect(alice)
        hub.connect(bob)
        hub.submit(alice, _frame("join-user", "alice"))
        hub.submit(bob, _frame("join-user", "bob"))
        hub.submit(alice, _frame("offer", {"from": "alice", "to": "bob", "offer": {"sdp": "x"}}))
        hub.submit(bob, _frame("auth-ack", {"from": "alice", "to": "bob", "accepted": True}))
        hub.disconnect(bob)
        await hub.drain()

        assert hub.running
        await hub.stop()
        assert not hub.running
        return hub, alice, bob

    hub, alice, bob = asyncio.run(_scenario())

    assert bob.events() == ["joined", "joined", "auth-request", "offer"]
    assert alice.events() == ["joined", "joined", "joined"]
    assert alice.received("joined")[-1] == {"alice": {"username": "alice", "id": "a"}}
    assert len(hub.tracker) == 0


def test_hub_keeps_running_after_handler_crash(make_hub):
    async def _scenario():
        hub = make_hub()
        original = hub.relay.dispatch_frame
        seen: list[str] = []

        def flaky(connection, frame):
            seen.append(frame)
            if len(seen) == 1:
                raise RuntimeError("boom")
            original(connection, frame)

        hub.relay.dispatch_frame = flaky
        await hub.start()
        survivor = FakeConnection("s")
        hub.connect(survivor)
        hub.submit(survivor, _frame("join-user", "first"))
        hub.submit(survivor, _frame("join-user", "survivor"))
        await hub.drain()
        running = hub.running
        await hub.stop()
        return running, survivor

    running, survivor = asyncio.run(_scenario())

    assert running
    assert survivor.received("joined") == [{"survivor": {"username": "survivor", "id": "s"}}]


class RecordingWebSocket:
    def __init__(self) -> None:
        self.frames: list[dict] = []

    async def send_json(self, data) -> None:
        self.frames.append(data)


def test_client_connection_writes_outbox_in_order():
    async def _scenario():
        websocket = RecordingWebSocket()
        connection = ClientConnection(websocket, queue_size=8)
        connection.start()
        connection.send("joined", {})
        connection.send("auth-request", {"from": "alice"})
        await asyncio.sleep(0.05)
        await connection.close()
        return websocket.frames

    frames = asyncio.run(_scenario())

    assert frames == [
        {"event": "joined", "data": {}},
        {"event": "auth-request", "data": {"from": "alice"}},
    ]


def test_client_connection_drops_when_outbox_full():
    async def _scenario():
        websocket = RecordingWebSocket()
        connection = ClientConnection(websocket, queue_size=1)
        connection.send("first", 1)
        connection.send("second", 2)
        connection.start()
        await asyncio.sleep(0.05)
        await connection.close()
        return websocket.frames

    assert asyncio.run(_scenario()) == [{"event": "first", "data": 1}]
