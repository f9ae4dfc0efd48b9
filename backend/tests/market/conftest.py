"""Fixtures for market data tests."""

import asyncio
import json

import pytest


class FakeSocketClient:
    """Stand-in for ``socketio.AsyncClient`` that records calls."""

    def __init__(self, **kwargs) -> None:
        self.options = kwargs
        self.handlers: dict[tuple[str, str | None], object] = {}
        self.connect_calls: list[tuple[str, dict]] = []
        self.connect_errors: list[Exception] = []
        self.disconnected = False
        self.connected = False

    def on(self, event, handler=None, namespace=None):
        self.handlers[(event, namespace)] = handler
        return handler

    async def connect(self, url, **kwargs) -> None:
        self.connect_calls.append((url, kwargs))
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        self.connected = True

    async def wait(self) -> None:
        # Hold the session open until the test cancels the source
        await asyncio.Event().wait()

    async def disconnect(self) -> None:
        self.disconnected = True
        self.connected = False

    def get_sid(self, namespace=None) -> str:
        return "sid-123"

    def trigger(self, event, *args, namespace="/brand-socket"):
        return self.handlers[(event, namespace)](*args)


@pytest.fixture
def fake_socket_client():
    """Factory that hands out one shared FakeSocketClient."""
    holder: dict[str, FakeSocketClient] = {}

    def factory(**kwargs):
        holder["client"] = FakeSocketClient(**kwargs)
        return holder["client"]

    factory.holder = holder
    return factory


def _parse_frame(frame: str) -> tuple[str | None, dict | None]:
    """Split an SSE frame into (event, data). Comment frames return (None, None)."""
    event = None
    data = None
    for line in frame.strip().splitlines():
        if line.startswith("event: "):
            event = line[len("event: "):]
        elif line.startswith("data: "):
            data = json.loads(line[len("data: "):])
    return event, data


@pytest.fixture
def parse_frame():
    return _parse_frame
