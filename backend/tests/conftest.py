"""
Pytest configuration and fixtures for relay tests.
"""

import itertools
import json

import pytest
from fastapi.testclient import TestClient

from signaling_gateway.components.connection.registry import ConnectionRegistry
from signaling_gateway.main import create_app
from signaling_gateway.relay import SignalingRelay


class FakeChannel:
    """
    Outbound channel that records what the relay sends.

    Set `fail=True` to make every send raise, like a socket that went away.
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[str] = []
        self.closed: tuple[int, str | None] | None = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionError("socket is gone")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)

    def messages(self) -> list[dict]:
        """Sent frames decoded as JSON."""
        return [json.loads(frame) for frame in self.sent]


class ScriptedGenerator:
    """Identifier generator that hands out ids from a fixed script."""

    length = 2

    def __init__(self, ids):
        self._ids = iter(ids)

    def next(self, length=None):
        return next(self._ids)


def presence(message_type: str, peer_id: str) -> dict:
    """Expected presence message."""
    return {"type": message_type, "peer": {"id": peer_id}}


@pytest.fixture
def make_channel():
    """Factory for recording outbound channels."""
    def _make(fail: bool = False) -> FakeChannel:
        return FakeChannel(fail=fail)
    return _make


@pytest.fixture
def scripted_registry():
    """Registry handing out ids aa, bb, cc, ... in order."""
    ids = (c * 2 for c in "abcdefghijklmnopqrstuvwxyz")
    return ConnectionRegistry(generator=ScriptedGenerator(ids))


@pytest.fixture
def relay(scripted_registry):
    """Relay with predictable connection ids."""
    return SignalingRelay(registry=scripted_registry)


@pytest.fixture
def random_relay():
    """Relay with the real random id generator."""
    return SignalingRelay()


@pytest.fixture(scope="function")
def client():
    """
    Test client for a fresh gateway application.

    Entering the client runs the lifespan and keeps every WebSocket session
    on one event loop, as in a real server.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


# Counter for tests that need distinct channel numbers
_channel_counter = itertools.count(100)


def next_channel() -> str:
    return str(next(_channel_counter))
