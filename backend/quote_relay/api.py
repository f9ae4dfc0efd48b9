"""Health and upstream status routes."""

from __future__ import annotations

from fastapi import APIRouter

from quote_relay.config import Settings
from quote_relay.market.interface import UpstreamSource
from quote_relay.market.models import now_ms
from quote_relay.market.store import QuoteStore


def create_status_router(
    store: QuoteStore, source: UpstreamSource, settings: Settings
) -> APIRouter:
    router = APIRouter(tags=["status"])

    @router.get("/health")
    async def health() -> dict:
        return {"ok": True, "env": settings.tl_env, "symbols": len(store)}

    @router.get("/brand/status")
    async def brand_status() -> dict:
        """Upstream connectivity as seen by the relay. Pure read."""
        return {
            "env": settings.tl_env,
            "server": source.server,
            "connected": source.connected,
            "symbols": len(store),
            "lastBrandEventAt": source.last_event_at,
            "lastConnectError": source.last_connect_error,
            "now": now_ms(),
        }

    return router
