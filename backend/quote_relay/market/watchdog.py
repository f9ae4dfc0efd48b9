"""Upstream liveness watchdog."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from .interface import UpstreamSource
from .models import now_ms

logger = logging.getLogger(__name__)


class WatchdogState(str, Enum):
    OK = "OK"
    RESTART_TRIGGERED = "RESTART_TRIGGERED"


class LivenessWatchdog:
    """Declares the upstream dead when it is disconnected and silent for too long.

    Reconnection itself is the source's job. This only catches the case the
    transport cannot diagnose on its own (stuck reconnecting, or a session
    that went quiet) and hands the decision to ``on_stale``, which is expected
    to end the process so a supervisor can start a fresh one.

    RESTART_TRIGGERED is terminal: ``on_stale`` is called at most once.
    """

    def __init__(
        self,
        source: UpstreamSource,
        stale_after_ms: int,
        on_stale: Callable[[int], None],
        poll_interval: float = 30.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._source = source
        self._stale_after_ms = stale_after_ms
        self._on_stale = on_stale
        self._interval = poll_interval
        self._clock = clock
        self._task: asyncio.Task | None = None
        self.state = WatchdogState.OK

    @property
    def enabled(self) -> bool:
        return self._stale_after_ms > 0

    def is_stale(self, now: int | None = None) -> bool:
        """True when disconnected and the last event is older than the threshold."""
        if not self.enabled or self._source.connected:
            return False
        ref = self._clock() if now is None else now
        return ref - (self._source.last_event_at or 0) > self._stale_after_ms

    def check(self, now: int | None = None) -> WatchdogState:
        """Run one check, firing ``on_stale`` on the OK -> RESTART_TRIGGERED edge."""
        if self.state is WatchdogState.RESTART_TRIGGERED:
            return self.state
        ref = self._clock() if now is None else now
        if self.is_stale(ref):
            age = ref - (self._source.last_event_at or 0)
            self.state = WatchdogState.RESTART_TRIGGERED
            logger.warning("Upstream stale for %d ms while disconnected, requesting restart", age)
            self._on_stale(age)
        return self.state

    def start(self) -> None:
        if not self.enabled:
            logger.info("Watchdog disabled (stale threshold is 0)")
            return
        self._task = asyncio.create_task(self._run_loop(), name="liveness-watchdog")
        logger.info(
            "Watchdog started: stale after %d ms, polling every %.1fs",
            self._stale_after_ms,
            self._interval,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _run_loop(self) -> None:
        while self.state is WatchdogState.OK:
            await asyncio.sleep(self._interval)
            self.check()
