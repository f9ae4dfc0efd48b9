"""Abstract interface for upstream market data sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from .models import now_ms

EventHandler = Callable[[Any], object]


class UpstreamSource(ABC):
    """Contract for upstream feeds.

    A source delivers every raw event it receives to ``on_event`` (normally
    ``QuoteHub.ingest``) and exposes the liveness state the watchdog and the
    status endpoint read. Reconnection is the source's own business.

    Lifecycle:
        source = create_upstream_source(settings, hub.ingest)
        await source.start()
        # ... app runs ...
        await source.stop()
    """

    def __init__(self, on_event: EventHandler) -> None:
        self._on_event = on_event
        self.last_event_at: int = 0  # Unix ms of the last upstream event; 0 = never
        self.last_connect_error: str = ""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the upstream session is currently up."""

    @property
    def server(self) -> str:
        """Human-readable upstream location for status output."""
        return ""

    @abstractmethod
    async def start(self) -> None:
        """Begin receiving events. Must be called exactly once."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving events and release resources.

        Safe to call multiple times. After stop(), ``on_event`` is not called again.
        """

    def _dispatch(self, event: Any) -> None:
        """Record liveness and hand one raw event to the handler."""
        self.last_event_at = now_ms()
        self._on_event(event)
