"""SSE streaming and snapshot endpoints for live quotes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from quote_relay.deps import parse_symbols, require_read_token

from .broadcast import QuoteBroadcaster, serialize_quotes
from .models import now_ms
from .store import QuoteStore

logger = logging.getLogger(__name__)


def create_stream_router(store: QuoteStore, broadcaster: QuoteBroadcaster) -> APIRouter:
    """Create the quotes router with references to the store and broadcaster.

    This factory pattern lets us inject shared state without globals.
    """
    router = APIRouter(
        prefix="/quotes", tags=["quotes"], dependencies=[Depends(require_read_token)]
    )

    @router.get("/stream")
    async def stream_quotes(
        request: Request, symbols: frozenset[str] = Depends(parse_symbols)
    ) -> StreamingResponse:
        """SSE endpoint for live quote updates.

        The client receives, in order:

            event: hello   data: {"ok":true,"env":"LIVE"}
            event: quotes  data: {"serverTime":...,"all":{"EURUSD":{...},...}}
            event: quotes  data: {"serverTime":...,"symbol":"EURUSD","quote":{...}}
            : ping

        followed by an update per merged quote matching ``symbols`` and a
        keepalive comment every heartbeat interval.
        """
        return StreamingResponse(
            _generate_events(broadcaster, symbols, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    @router.get("/state")
    async def quotes_state(symbols: frozenset[str] = Depends(parse_symbols)) -> dict:
        """Point-in-time snapshot, filtered like the stream."""
        quotes = store.snapshot(symbols)
        return {"serverTime": now_ms(), "count": len(quotes), "quotes": serialize_quotes(quotes)}

    return router


async def _generate_events(
    broadcaster: QuoteBroadcaster,
    symbols: frozenset[str],
    request: Request,
) -> AsyncGenerator[str, None]:
    """Async generator that relays a subscriber's frames as SSE text.

    Ends when the client disconnects or the broadcaster drops the subscriber.
    The subscriber is always unregistered on the way out.
    """
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    async with broadcaster.subscription(symbols) as sub:
        try:
            # Disconnects are seen only after a frame; keepalive pings bound the delay
            async for frame in sub:
                yield frame
                if await request.is_disconnected():
                    logger.info("SSE client disconnected: %s", client_ip)
                    break
            else:
                logger.info("SSE stream closed by server for: %s", client_ip)
        except asyncio.CancelledError:
            logger.info("SSE stream cancelled for: %s", client_ip)
            raise
