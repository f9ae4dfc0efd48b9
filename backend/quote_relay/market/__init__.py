"""Market data subsystem for the quote relay.

Public API:
    Quote, QuoteDelta       - Canonical quote record and partial update
    normalize_event         - Raw upstream event -> QuoteDelta or None
    QuoteStore              - Thread-safe per-symbol quote store
    QuoteBroadcaster        - Subscriber registry and SSE fan-out
    QuoteHub                - Normalize -> merge -> publish ingestion path
    LivenessWatchdog        - Upstream staleness detector
    UpstreamSource          - Abstract interface for upstream feeds
    create_upstream_source  - Factory that selects brand socket or simulator
    create_stream_router    - FastAPI router factory for SSE and snapshot endpoints
"""

from .broadcast import QuoteBroadcaster, Subscriber
from .factory import create_upstream_source
from .hub import QuoteHub
from .interface import UpstreamSource
from .models import Quote, QuoteDelta
from .normalizer import normalize_event
from .store import QuoteStore
from .stream import create_stream_router
from .watchdog import LivenessWatchdog, WatchdogState

__all__ = [
    "Quote",
    "QuoteDelta",
    "normalize_event",
    "QuoteStore",
    "QuoteBroadcaster",
    "Subscriber",
    "QuoteHub",
    "LivenessWatchdog",
    "WatchdogState",
    "UpstreamSource",
    "create_upstream_source",
    "create_stream_router",
]
