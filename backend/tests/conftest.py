"""Pytest configuration and fixtures."""

import pytest

from quote_relay.config import Settings
from quote_relay.market.broadcast import QuoteBroadcaster
from quote_relay.market.hub import QuoteHub
from quote_relay.market.interface import UpstreamSource
from quote_relay.market.store import QuoteStore


class FakeSource(UpstreamSource):
    """In-process upstream whose connectivity and events are driven by the test."""

    def __init__(self, on_event, connected: bool = True) -> None:
        super().__init__(on_event)
        self._is_connected = connected
        self.started = False
        self.stopped = False

    @property
    def connected(self) -> bool:
        return self._is_connected

    @property
    def server(self) -> str:
        return "fake://upstream"

    def set_connected(self, value: bool) -> None:
        self._is_connected = value

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def emit(self, event) -> None:
        self._dispatch(event)


@pytest.fixture
def settings() -> Settings:
    """Settings with timers long enough to stay out of the way of tests."""
    return Settings(
        tl_env="DEMO",
        heartbeat_ms=60000,
        stale_ms=120000,
        watchdog_interval_ms=60000,
    )


@pytest.fixture
def store() -> QuoteStore:
    return QuoteStore()


@pytest.fixture
def broadcaster(store) -> QuoteBroadcaster:
    """Broadcaster with keepalive disabled so queues hold only quote frames."""
    return QuoteBroadcaster(store, env="DEMO", heartbeat_interval=0, max_queue=16)


@pytest.fixture
def hub(store, broadcaster) -> QuoteHub:
    return QuoteHub(store, broadcaster)


@pytest.fixture
def make_source():
    """The FakeSource class, for tests that need to bind their own handler."""
    return FakeSource


@pytest.fixture
def fake_source(hub) -> FakeSource:
    """Connected fake upstream feeding the hub."""
    return FakeSource(hub.ingest)
