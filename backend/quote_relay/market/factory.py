"""Factory for creating the upstream source."""

from __future__ import annotations

import logging

from quote_relay.config import Settings

from .interface import EventHandler, UpstreamSource

logger = logging.getLogger(__name__)


def create_upstream_source(settings: Settings, on_event: EventHandler) -> UpstreamSource:
    """Create the upstream source selected by the settings.

    - TL_BRAND_KEY set and non-empty → BrandSocketSource (live TradeLocker feed)
    - Otherwise, TL_SIMULATOR enabled → SimulatorSource (offline GBM quotes)
    - Neither → ConfigError

    Returns an unstarted source. Caller must await source.start().
    """
    settings.require_upstream()
    brand_key = settings.tl_brand_key.strip()

    if brand_key:
        from .brand_socket import BrandSocketSource

        logger.info("Upstream source: TradeLocker brand socket (%s)", settings.tl_env)
        return BrandSocketSource(
            brand_key=brand_key,
            on_event=on_event,
            server=settings.tl_server,
            env=settings.tl_env,
        )
    else:
        from .simulator import SimulatorSource

        logger.warning("TL_SIMULATOR enabled; serving simulated quotes, not live prices")
        return SimulatorSource(on_event=on_event)
