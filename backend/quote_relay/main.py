"""Application wiring and process entry point."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quote_relay import __version__
from quote_relay.api import create_status_router
from quote_relay.config import Settings, get_settings
from quote_relay.errors import ConfigError, UnauthorizedError
from quote_relay.market import (
    LivenessWatchdog,
    QuoteBroadcaster,
    QuoteHub,
    QuoteStore,
    UpstreamSource,
    create_stream_router,
    create_upstream_source,
)
from quote_relay.market.interface import EventHandler

logger = logging.getLogger(__name__)

# Distinct from crash exits so a supervisor can tell a watchdog restart apart
EXIT_STALE_UPSTREAM = 75

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def exit_for_restart(age_ms: int) -> None:
    """Terminate the process so the supervisor starts a fresh instance."""
    logger.critical("Upstream silent for %d ms while disconnected; exiting for restart", age_ms)
    logging.shutdown()
    os._exit(EXIT_STALE_UPSTREAM)


async def _unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"ok": False, "error": str(exc)})


def create_app(
    settings: Settings | None = None,
    source_factory: Callable[[EventHandler], UpstreamSource] | None = None,
    on_stale: Callable[[int], None] | None = None,
) -> FastAPI:
    """Build the relay app with its own store, broadcaster, hub and upstream.

    ``source_factory`` receives the ingestion callback and returns an unstarted
    source; by default the source is chosen from the settings.
    """
    settings = settings or get_settings()

    store = QuoteStore()
    broadcaster = QuoteBroadcaster(
        store,
        env=settings.tl_env,
        heartbeat_interval=settings.heartbeat_ms / 1000,
        max_queue=settings.subscriber_queue_size,
    )
    hub = QuoteHub(store, broadcaster)
    if source_factory is None:
        source = create_upstream_source(settings, hub.ingest)
    else:
        source = source_factory(hub.ingest)
    watchdog = LivenessWatchdog(
        source,
        stale_after_ms=settings.stale_ms,
        on_stale=on_stale or exit_for_restart,
        poll_interval=settings.watchdog_interval_ms / 1000,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await source.start()
        watchdog.start()
        logger.info("Quote relay ready (env=%s)", settings.tl_env)
        try:
            yield
        finally:
            await watchdog.stop()
            await source.stop()
            broadcaster.close_all()

    app = FastAPI(title="Quote Relay", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]
    )
    app.add_exception_handler(UnauthorizedError, _unauthorized_handler)
    app.include_router(create_stream_router(store, broadcaster))
    app.include_router(create_status_router(store, source, settings))

    app.state.settings = settings
    app.state.store = store
    app.state.broadcaster = broadcaster
    app.state.hub = hub
    app.state.source = source
    app.state.watchdog = watchdog
    return app


def main() -> None:
    import uvicorn

    try:
        settings = get_settings()
    except ConfigError as exc:
        configure_logging()
        logger.critical("%s", exc)
        raise SystemExit(1) from exc
    configure_logging(settings.log_level)
    logger.info("Quotes relay listening on %s:%d", settings.host, settings.port)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
