"""Ingestion path: raw upstream event -> normalized delta -> store -> subscribers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .broadcast import QuoteBroadcaster
from .models import Quote, QuoteDelta
from .normalizer import normalize_event
from .store import QuoteStore

logger = logging.getLogger(__name__)


class QuoteHub:
    """Single writer for the QuoteStore.

    Upstream sources call ``ingest`` for every raw event they receive. Merge
    and publish run under the broadcaster lock as one step.
    """

    def __init__(self, store: QuoteStore, broadcaster: QuoteBroadcaster) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.events_seen = 0
        self.quotes_applied = 0

    def ingest(self, event: Any) -> Quote | None:
        """Normalize and apply one raw event. Returns the merged quote, if any."""
        self.events_seen += 1
        delta = normalize_event(event)
        if delta is None:
            logger.debug("Ignoring non-quote event: %r", _event_type(event))
            return None
        return self.apply(delta)

    def apply(self, delta: QuoteDelta) -> Quote:
        """Merge a delta and fan the resulting quote out to subscribers."""
        with self.broadcaster.lock:
            quote = self.store.merge(delta)
            self.broadcaster.publish(delta.symbol, quote)
        self.quotes_applied += 1
        return quote


def _event_type(event: Any) -> Any:
    if isinstance(event, Mapping):
        return event.get("type")
    return type(event).__name__
