"""Data models for market data."""

from __future__ import annotations

import time
from dataclasses import dataclass


def now_ms() -> int:
    """Current wall-clock time as Unix milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class QuoteDelta:
    """Partial update for one symbol. Any price field may be absent (None)."""

    symbol: str
    bid: float | None = None
    ask: float | None = None
    last: float | None = None
    time: int | None = None  # Unix ms; None means "use merge time"


@dataclass(frozen=True, slots=True)
class Quote:
    """Latest known quote for a single symbol.

    Stored records are immutable; the store swaps in a new instance on every
    merge so readers never see a half-applied update.
    """

    bid: float | None = None
    ask: float | None = None
    last: float | None = None
    time: int = 0  # Unix ms

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission. Absent fields are omitted."""
        out: dict = {}
        if self.bid is not None:
            out["bid"] = self.bid
        if self.ask is not None:
            out["ask"] = self.ask
        if self.last is not None:
            out["last"] = self.last
        out["time"] = self.time
        return out
