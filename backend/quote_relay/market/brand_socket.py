"""TradeLocker brand-socket client (Socket.IO) for live quotes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlencode

from .interface import EventHandler, UpstreamSource

logger = logging.getLogger(__name__)

NAMESPACE = "/brand-socket"
SOCKETIO_PATH = "/brand-api/socket.io"


class BrandSocketSource(UpstreamSource):
    """UpstreamSource backed by the TradeLocker brand Socket.IO stream.

    Every ``stream`` event on the brand namespace is forwarded to the handler.
    Once a session is up, python-socketio's own reconnection takes over
    (unlimited attempts, 1s base delay, 10s cap, 0.5 jitter). The initial
    connect is retried here with capped exponential backoff because the client
    does not reconnect a session that never opened.
    """

    def __init__(
        self,
        brand_key: str,
        on_event: EventHandler,
        server: str = "wss://api.tradelocker.com",
        env: str = "LIVE",
        connect_timeout: float = 20.0,
        backoff_base: float = 1.0,
        backoff_cap: float = 10.0,
        client_factory: Callable[..., Any] | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(on_event)
        self._brand_key = brand_key
        self._server = server.rstrip("/")
        self._env = env
        self._connect_timeout = connect_timeout
        self._backoff_base = backoff_base
        self._backoff_cap = backoff_cap
        self._client_factory = client_factory or self._default_client_factory
        self._sleep = sleep_fn
        self._client: Any = None
        self._task: asyncio.Task | None = None
        self._connected = False
        self.connect_attempts = 0

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def server(self) -> str:
        return self._server

    @property
    def url(self) -> str:
        return f"{self._server}?{urlencode({'type': self._env})}"

    @staticmethod
    def _default_client_factory(**kwargs: Any) -> Any:
        import socketio

        return socketio.AsyncClient(**kwargs)

    async def start(self) -> None:
        self._client = self._client_factory(
            reconnection=True,
            reconnection_attempts=0,  # unlimited
            reconnection_delay=1,
            reconnection_delay_max=10,
            randomization_factor=0.5,
        )
        self._client.on("connect", self._on_connect, namespace=NAMESPACE)
        self._client.on("disconnect", self._on_disconnect, namespace=NAMESPACE)
        self._client.on("connect_error", self._on_connect_error, namespace=NAMESPACE)
        self._client.on("stream", self._on_stream, namespace=NAMESPACE)
        self._task = asyncio.create_task(self._run_loop(), name="brand-socket")
        logger.info("Brand socket starting: %s%s env=%s", self._server, NAMESPACE, self._env)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        if self._client is not None:
            try:
                await self._client.disconnect()
            except Exception as e:
                logger.warning("Brand socket disconnect failed: %s", e)
        self._client = None
        self._connected = False
        logger.info("Brand socket stopped")

    # --- Internal ---

    async def _connect_once(self) -> None:
        self.connect_attempts += 1
        await self._client.connect(
            self.url,
            headers={"brand-api-key": self._brand_key},
            transports=["websocket", "polling"],
            namespaces=[NAMESPACE],
            socketio_path=SOCKETIO_PATH,
            wait_timeout=self._connect_timeout,
        )

    async def _run_loop(self) -> None:
        """Connect with backoff, then hold the session until it ends for good."""
        attempt = 0
        while True:
            try:
                await self._connect_once()
            except Exception as e:
                self.last_connect_error = str(e) or type(e).__name__
                delay = min(self._backoff_base * (2**attempt), self._backoff_cap)
                attempt += 1
                logger.error(
                    "Brand socket connect failed (attempt %d): %s; retrying in %.1fs",
                    attempt,
                    self.last_connect_error,
                    delay,
                )
                await self._sleep(delay)
                continue

            attempt = 0
            await self._client.wait()
            self._connected = False
            logger.warning("Brand socket session ended; reconnecting")

    def _on_connect(self) -> None:
        self._connected = True
        self.last_connect_error = ""
        sid = None
        try:
            sid = self._client.get_sid(NAMESPACE)
        except Exception:
            logger.debug("Brand socket sid unavailable")
        logger.info("Brand socket connected (sid=%s)", sid)

    def _on_disconnect(self, *args: Any) -> None:
        self._connected = False
        reason = args[0] if args else "unknown"
        logger.warning("Brand socket disconnected: %s", reason)

    def _on_connect_error(self, data: Any = None) -> None:
        self._connected = False
        message = data.get("message") if isinstance(data, dict) else data
        self.last_connect_error = str(message or "connect_error")
        logger.error("Brand socket connect_error: %s (%r)", self.last_connect_error, data)

    def _on_stream(self, message: Any) -> None:
        try:
            self._dispatch(message)
        except Exception:
            logger.exception("Failed to process brand stream event")
