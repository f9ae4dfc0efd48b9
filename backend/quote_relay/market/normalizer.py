"""Map raw upstream events to canonical quote deltas.

Upstream message taxonomies drift between vendors and API versions, so the
normalizer works from data rather than per-vendor branches:

    - ``QUOTE_TYPE_MARKERS`` decides whether an event looks like a quote
    - ``BODY_PATHS`` says where the quote body may live inside the event
    - ``FIELD_ALIASES`` lists, per logical field, the keys to try in order

Adding support for a new upstream shape means editing those tables.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from .models import QuoteDelta, now_ms

QUOTE_TYPE_MARKERS: tuple[str, ...] = ("QUOTE", "TICK", "PRIC", "MARKET")

# Presence of any of these marks an event as quote-like regardless of its type
NESTED_QUOTE_PATHS: tuple[str, ...] = ("quote", "data.quote", "payload.quote")

# First mapping found wins; the event itself is the final fallback
BODY_PATHS: tuple[str, ...] = ("quote", "data.quote", "payload.quote", "payload")

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "symbol": ("symbol", "instrument", "symbolName", "s", "Symbol"),
    "bid": ("bid", "b", "Bid", "BidPrice"),
    "ask": ("ask", "a", "Ask", "AskPrice"),
    "last": ("last", "price", "p", "mark", "Last", "LastPrice"),
    "time": ("time", "ts", "timestamp", "Time", "Timestamp"),
}

_MISSING = object()


def resolve_path(obj: Any, path: str) -> Any:
    """Follow a dotted key path through nested mappings.

    Returns ``_MISSING`` as soon as a step is not a mapping or lacks the key.
    """
    cur = obj
    for key in path.split("."):
        if isinstance(cur, Mapping) and key in cur:
            cur = cur[key]
        else:
            return _MISSING
    return cur


def _is_blank(value: Any) -> bool:
    return value is _MISSING or value is None or value == ""


def first_present(obj: Any, paths: tuple[str, ...]) -> Any | None:
    """Return the value at the first path holding a non-null, non-empty value."""
    for path in paths:
        value = resolve_path(obj, path)
        if not _is_blank(value):
            return value
    return None


def to_float(value: Any) -> float | None:
    """Coerce to a finite float, or None if that is not possible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        x = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return x if math.isfinite(x) else None


def is_quote_like(event: Any) -> bool:
    """Decide whether an upstream event carries a quote update."""
    if not isinstance(event, Mapping):
        return False
    type_tag = event.get("type")
    tag = "" if type_tag is None else str(type_tag).upper()
    if any(marker in tag for marker in QUOTE_TYPE_MARKERS):
        return True
    return any(_nonempty(resolve_path(event, p)) for p in NESTED_QUOTE_PATHS)


def _nonempty(value: Any) -> bool:
    if _is_blank(value):
        return False
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) > 0
    return bool(value)


def locate_body(event: Mapping) -> Mapping:
    """Find the mapping that holds the quote fields."""
    for path in BODY_PATHS:
        candidate = resolve_path(event, path)
        if isinstance(candidate, Mapping) and candidate:
            return candidate
    return event


def extract_delta(body: Mapping, now: int | None = None) -> QuoteDelta | None:
    """Build a QuoteDelta from a located quote body.

    Returns None when no symbol can be resolved.
    """
    raw_symbol = first_present(body, FIELD_ALIASES["symbol"])
    symbol = "" if raw_symbol is None else str(raw_symbol)
    if not symbol:
        return None

    ts = to_float(first_present(body, FIELD_ALIASES["time"]))
    if not ts:
        ts = now if now is not None else now_ms()

    return QuoteDelta(
        symbol=symbol,
        bid=to_float(first_present(body, FIELD_ALIASES["bid"])),
        ask=to_float(first_present(body, FIELD_ALIASES["ask"])),
        last=to_float(first_present(body, FIELD_ALIASES["last"])),
        time=int(ts),
    )


def normalize_event(event: Any, now: int | None = None) -> QuoteDelta | None:
    """Normalize one raw upstream event.

    Returns None for anything that is not a quote-like event with a symbol.
    """
    if not is_quote_like(event):
        return None
    return extract_delta(locate_body(event), now=now)
