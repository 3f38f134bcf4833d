from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


class FakeConnection:
    """Connection handle that records what the relay sends to it."""

    def __init__(self, connection_id: str) -> None:
        self.id = connection_id
        self.sent: list[tuple[str, Any]] = []

    def send(self, event: str, data: Any) -> None:
        self.sent.append((event, data))

    def events(self) -> list[str]:
        return [event for event, _ in self.sent]

    def received(self, event: str) -> list[Any]:
        return [data for name, data in self.sent if name == event]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture()
def make_hub():
    from config.settings import Settings
    from signaling.hub import SignalingHub

    def _make(**overrides):
        return SignalingHub(Settings(**overrides))

    return _make


@pytest.fixture()
def hub(make_hub):
    return make_hub()


@pytest.fixture()
def join(hub):
    """Attach a fake connection and join it under `name`."""

    def _join(name: str, target=None) -> FakeConnection:
        target = target or hub
        connection = FakeConnection(f"conn-{name}-{len(target.registry.connections())}")
        target.lifecycle.connect(connection)
        target.relay.dispatch(connection, "join-user", name)
        return connection

    return _join


@pytest.fixture(scope="session")
def app():
    import importlib

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client
