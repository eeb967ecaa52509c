"""
Pytest configuration and fixtures for signaling tests.
"""

import json

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import SignalingBackend
from registry import CloseFrame, Connection


class FakeTransport:
    """In-memory stand-in for a WebSocket: records frames written by the connection writer."""

    def __init__(self, fail_on_send: bool = False):
        self.sent = []
        self.closed = False
        self.close_code = None
        self.fail_on_send = fail_on_send

    async def send_text(self, data: str):
        if self.fail_on_send:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str = None):
        self.closed = True
        self.close_code = code


def drain(connection: Connection) -> list:
    """Pop every queued outbound message (close frames excluded)."""
    messages = []
    while not connection.outbox.empty():
        item = connection.outbox.get_nowait()
        if not isinstance(item, CloseFrame):
            messages.append(item)
    return messages


def of_type(messages: list, message_type: str) -> list:
    return [m for m in messages if m["type"] == message_type]


@pytest.fixture
def backend():
    return SignalingBackend(heartbeat_interval=30, shutdown_timeout=0.5)


@pytest.fixture
def connect(backend):
    """Register a fake connection and return it with the welcome message consumed."""
    def _connect(remote_address: str = "127.0.0.1:5000") -> Connection:
        connection = Connection(FakeTransport(), remote_address=remote_address)
        backend.connect(connection)
        drain(connection)
        return connection
    return _connect


@pytest.fixture
def send(backend):
    def _send(connection: Connection, message):
        raw = message if isinstance(message, str) else json.dumps(message)
        backend.receive(connection.id, raw)
    return _send


@pytest.fixture(scope="function")
def client():
    """Test client over a fresh application and backend."""
    app = create_app(SignalingBackend(heartbeat_interval=30, shutdown_timeout=0.5))
    with TestClient(app) as test_client:
        yield test_client
