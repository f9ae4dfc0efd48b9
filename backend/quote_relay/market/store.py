"""Thread-safe in-memory quote store."""

from __future__ import annotations

import math
from collections.abc import Iterable
from threading import Lock

from .models import Quote, QuoteDelta, now_ms


def _pick(incoming: float | None, current: float | None) -> float | None:
    if incoming is not None and math.isfinite(incoming):
        return incoming
    return current


class QuoteStore:
    """Latest quote per symbol, merged field by field.

    Writer: QuoteHub (the upstream ingestion path).
    Readers: SSE snapshots, the JSON state endpoint, health/status.
    """

    def __init__(self) -> None:
        self._quotes: dict[str, Quote] = {}
        self._lock = Lock()
        self._version: int = 0  # Monotonically increasing; bumped on every merge

    def merge(self, delta: QuoteDelta) -> Quote:
        """Apply a partial update and return the resulting full record.

        Each of bid/ask/last is replaced only when the delta carries a finite
        value for it. ``time`` always comes from the delta, or now if it has none.
        """
        with self._lock:
            cur = self._quotes.get(delta.symbol) or Quote()
            quote = Quote(
                bid=_pick(delta.bid, cur.bid),
                ask=_pick(delta.ask, cur.ask),
                last=_pick(delta.last, cur.last),
                time=delta.time or now_ms(),
            )
            self._quotes[delta.symbol] = quote
            self._version += 1
            return quote

    def get(self, symbol: str) -> Quote | None:
        """Get the latest quote for a single symbol, or None if unknown."""
        with self._lock:
            return self._quotes.get(symbol)

    def snapshot(self, symbols: Iterable[str] = ()) -> dict[str, Quote]:
        """Current quotes for ``symbols``, or for every symbol if empty.

        Symbols that were never quoted are simply absent from the result.
        """
        wanted = frozenset(symbols)
        with self._lock:
            if not wanted:
                return dict(self._quotes)
            return {s: q for s, q in self._quotes.items() if s in wanted}

    @property
    def version(self) -> int:
        """Current version counter."""
        return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._quotes)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._quotes
