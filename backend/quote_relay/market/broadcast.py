"""Subscriber registry and quote fan-out."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import threading
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from .models import Quote, now_ms
from .store import QuoteStore

logger = logging.getLogger(__name__)

PING_FRAME = ": ping\n\n"

_ids = itertools.count(1)


def format_sse(event: str, data: dict) -> str:
    """Render one SSE frame with a compact JSON payload."""
    payload = json.dumps(data, separators=(",", ":"))
    return f"event: {event}\ndata: {payload}\n\n"


def serialize_quotes(quotes: dict[str, Quote]) -> dict[str, dict]:
    return {symbol: quote.to_dict() for symbol, quote in quotes.items()}


class Subscriber:
    """One live consumer of the quote stream.

    Frames are pre-rendered SSE strings held in a bounded queue. Iterating the
    subscriber yields frames until it is closed. The subscriber never touches
    the HTTP transport itself.
    """

    def __init__(self, symbols: Iterable[str] = (), max_queue: int = 1000) -> None:
        self.id = next(_ids)
        self.filter: frozenset[str] = frozenset(symbols)
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max(max_queue, 2))
        self._keepalive: asyncio.Task | None = None
        self.closed = False

    def accepts(self, symbol: str) -> bool:
        """Empty filter means every symbol."""
        return not self.filter or symbol in self.filter

    def offer(self, frame: str) -> bool:
        """Enqueue a frame without blocking. False if closed or backlogged."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        """Stop keepalive and wake the reader with an end-of-stream marker.

        Pending frames are discarded. Safe to call more than once.
        """
        if self.closed:
            return
        self.closed = True
        task = self._keepalive
        self._keepalive = None
        if task is not None and task is not _current_task():
            task.cancel()
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    def __aiter__(self) -> Subscriber:
        return self

    async def __anext__(self) -> str:
        frame = await self._queue.get()
        if frame is None:
            raise StopAsyncIteration
        return frame

    def __repr__(self) -> str:
        symbols = ",".join(sorted(self.filter)) or "*"
        return f"Subscriber(id={self.id}, filter={symbols}, closed={self.closed})"


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class QuoteBroadcaster:
    """Registry of subscribers and the fan-out path for quote updates.

    ``lock`` serializes registration (with its initial snapshot) against
    publishing, so a new subscriber always sees its baseline snapshot before
    any incremental update. QuoteHub holds the same lock across merge and
    publish to keep per-symbol delivery order identical to merge order.
    """

    def __init__(
        self,
        store: QuoteStore,
        env: str = "LIVE",
        heartbeat_interval: float = 1.0,
        max_queue: int = 1000,
    ) -> None:
        self._store = store
        self._env = env
        self._heartbeat_interval = heartbeat_interval
        self._max_queue = max_queue
        self._subscribers: set[Subscriber] = set()
        self.lock = threading.RLock()

    def subscribe(self, symbols: Iterable[str] = ()) -> Subscriber:
        """Register a subscriber and queue its hello and snapshot frames.

        Must be called from a running event loop when keepalive is enabled.
        """
        sub = Subscriber(symbols, max_queue=self._max_queue)
        with self.lock:
            sub.offer(format_sse("hello", {"ok": True, "env": self._env}))
            snapshot = self._store.snapshot(sub.filter)
            sub.offer(
                format_sse("quotes", {"serverTime": now_ms(), "all": serialize_quotes(snapshot)})
            )
            self._subscribers.add(sub)
        if self._heartbeat_interval > 0:
            sub._keepalive = asyncio.create_task(
                self._keepalive_loop(sub), name=f"sse-keepalive-{sub.id}"
            )
        logger.info(
            "Subscriber %d registered (filter=%s, snapshot=%d symbols, total=%d)",
            sub.id,
            ",".join(sorted(sub.filter)) or "*",
            len(snapshot),
            len(self),
        )
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        """Remove a subscriber and release its keepalive. No-op if already gone."""
        with self.lock:
            registered = sub in self._subscribers
            self._subscribers.discard(sub)
        sub.close()
        if registered:
            logger.info("Subscriber %d removed (total=%d)", sub.id, len(self))

    @asynccontextmanager
    async def subscription(self, symbols: Iterable[str] = ()) -> AsyncIterator[Subscriber]:
        """Scope a subscriber to a block; teardown runs exactly once."""
        sub = self.subscribe(symbols)
        try:
            yield sub
        finally:
            self.unsubscribe(sub)

    def publish(self, symbol: str, quote: Quote) -> int:
        """Offer an update to every matching subscriber. Returns the delivery count.

        Never blocks: a subscriber whose queue is full is dropped.
        """
        frame = format_sse(
            "quotes", {"serverTime": now_ms(), "symbol": symbol, "quote": quote.to_dict()}
        )
        delivered = 0
        with self.lock:
            for sub in [s for s in self._subscribers if s.accepts(symbol)]:
                if sub.offer(frame):
                    delivered += 1
                else:
                    self._drop(sub, "backlog full")
        return delivered

    def close_all(self) -> None:
        """Disconnect every subscriber (used on shutdown)."""
        with self.lock:
            subs = list(self._subscribers)
        for sub in subs:
            self.unsubscribe(sub)

    def _drop(self, sub: Subscriber, reason: str) -> None:
        logger.warning("Dropping subscriber %d: %s", sub.id, reason)
        self.unsubscribe(sub)

    async def _keepalive_loop(self, sub: Subscriber) -> None:
        while not sub.closed:
            await asyncio.sleep(self._heartbeat_interval)
            if not sub.offer(PING_FRAME):
                if not sub.closed:
                    self._drop(sub, "keepalive backlog full")
                return

    def __len__(self) -> int:
        with self.lock:
            return len(self._subscribers)

    def __contains__(self, sub: Subscriber) -> bool:
        with self.lock:
            return sub in self._subscribers
