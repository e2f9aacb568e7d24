import asyncio
import json

import pytest


class FakeSocket:
    """In-memory stand-in for a client WebSocket connection."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def push(self, message) -> None:
        self.queue.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.queue.put_nowait(None)

    async def close(self) -> None:
        self.closed = True
        self.queue.put_nowait(None)


class ScriptedConnector:
    """Connector that fails a given number of times, then hands out FakeSockets."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls = 0
        self.sockets = []

    async def __call__(self, url: str):
        self.calls += 1
        if self.calls <= self.failures:
            raise OSError("connection refused")
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket


@pytest.fixture
def connector_factory():
    """Build a ScriptedConnector failing the given number of times."""
    return ScriptedConnector


@pytest.fixture
def push_message(make_snapshot):
    """Factory for wire-format push messages."""

    def _make(kind: str = "update", total_events: int = 0) -> dict:
        message = {"type": kind, "data": make_snapshot(total_events).to_wire()}
        if kind == "update":
            message["timestamp"] = "2025-01-26T12:00:00.000000Z"
        return message

    return _make
