"""GBM-based offline upstream used when no brand key is configured."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import Any

import numpy as np

from .interface import EventHandler, UpstreamSource
from .models import now_ms
from .seed_quotes import (
    CORRELATION_GROUPS,
    CROSS_GROUP_CORR,
    DEFAULT_CORR,
    DEFAULT_PARAMS,
    INTRA_USD_BASE_CORR,
    INTRA_USD_QUOTE_CORR,
    SEED_MIDS,
    SYMBOL_PARAMS,
)

logger = logging.getLogger(__name__)

DEFAULT_SYMBOLS: list[str] = list(SEED_MIDS)


class GBMSimulator:
    """Driftless Geometric Brownian Motion over correlated mid prices.

    Math:
        M(t+dt) = M(t) * exp(-sigma^2/2 * dt + sigma * sqrt(dt) * Z)

    Where Z is a correlated standard normal draw. FX trades around the clock,
    so dt is the tick interval as a fraction of a calendar year.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600
    DEFAULT_DT = 0.5 / SECONDS_PER_YEAR

    def __init__(self, symbols: list[str], dt: float = DEFAULT_DT) -> None:
        self._dt = dt
        self._symbols: list[str] = []
        self._mids: dict[str, float] = {}
        self._params: dict[str, dict[str, float]] = {}
        self._cholesky: np.ndarray | None = None

        for symbol in symbols:
            self._add_symbol(symbol)
        self._rebuild_cholesky()

    # --- Public API ---

    def step(self) -> dict[str, tuple[float, float]]:
        """Advance all symbols one step. Returns {symbol: (bid, ask)}."""
        n = len(self._symbols)
        if n == 0:
            return {}

        z = np.random.standard_normal(n)
        if self._cholesky is not None:
            z = self._cholesky @ z

        result: dict[str, tuple[float, float]] = {}
        for i, symbol in enumerate(self._symbols):
            sigma = self._params[symbol]["sigma"]
            drift = -0.5 * sigma**2 * self._dt
            diffusion = sigma * math.sqrt(self._dt) * z[i]
            self._mids[symbol] *= math.exp(drift + diffusion)
            result[symbol] = self.quote(symbol)
        return result

    def quote(self, symbol: str) -> tuple[float, float]:
        """Current (bid, ask) around the mid, rounded to the symbol's precision."""
        mid = self._mids[symbol]
        spread = self._params[symbol]["spread"]
        digits = self.price_digits(spread)
        return round(mid - spread / 2, digits), round(mid + spread / 2, digits)

    @staticmethod
    def price_digits(spread: float) -> int:
        """Decimal places needed to show a spread with one extra digit."""
        return max(0, 1 - math.floor(math.log10(spread)))

    # --- Internals ---

    def _add_symbol(self, symbol: str) -> None:
        if symbol in self._mids:
            return
        self._symbols.append(symbol)
        self._mids[symbol] = SEED_MIDS.get(symbol, random.uniform(0.5, 2.0))
        self._params[symbol] = SYMBOL_PARAMS.get(symbol, dict(DEFAULT_PARAMS))

    def _rebuild_cholesky(self) -> None:
        n = len(self._symbols)
        if n <= 1:
            self._cholesky = None
            return

        corr = np.eye(n)
        for i in range(n):
            for j in range(i + 1, n):
                rho = self._pairwise_correlation(self._symbols[i], self._symbols[j])
                corr[i, j] = rho
                corr[j, i] = rho

        self._cholesky = np.linalg.cholesky(corr)

    @staticmethod
    def _pairwise_correlation(s1: str, s2: str) -> float:
        usd_quote = CORRELATION_GROUPS["usd_quote"]
        usd_base = CORRELATION_GROUPS["usd_base"]

        if s1 in usd_quote and s2 in usd_quote:
            return INTRA_USD_QUOTE_CORR
        if s1 in usd_base and s2 in usd_base:
            return INTRA_USD_BASE_CORR
        if (s1 in usd_quote and s2 in usd_base) or (s1 in usd_base and s2 in usd_quote):
            return CROSS_GROUP_CORR
        return DEFAULT_CORR


def render_event(symbol: str, bid: float, ask: float, ts: int, shape: int) -> dict[str, Any]:
    """Wrap a quote in one of the payload shapes seen on real upstreams."""
    shape %= 4
    if shape == 0:
        return {"type": "Quote", "quote": {"symbol": symbol, "bid": bid, "ask": ask, "time": ts}}
    if shape == 1:
        return {
            "type": "MarketData",
            "data": {"quote": {"instrument": symbol, "Bid": bid, "Ask": ask, "Timestamp": ts}},
        }
    if shape == 2:
        mid = (bid + ask) / 2
        return {
            "type": "tick",
            "payload": {"s": symbol, "b": str(bid), "a": str(ask), "p": mid, "ts": ts},
        }
    return {"type": "PriceUpdate", "payload": {"symbolName": symbol, "BidPrice": bid, "AskPrice": ask}}


class SimulatorSource(UpstreamSource):
    """UpstreamSource backed by the GBM simulator.

    Emits raw, upstream-shaped events (rotating through several payload
    layouts, plus periodic non-quote noise) so the full normalize/merge/publish
    path runs without a live feed.
    """

    def __init__(
        self,
        on_event: EventHandler,
        symbols: list[str] | None = None,
        update_interval: float = 0.5,
        noise_every: int = 20,
    ) -> None:
        super().__init__(on_event)
        self._symbols = list(symbols) if symbols is not None else list(DEFAULT_SYMBOLS)
        self._interval = update_interval
        self._noise_every = noise_every
        self._sim: GBMSimulator | None = None
        self._task: asyncio.Task | None = None
        self._steps = 0

    @property
    def connected(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def server(self) -> str:
        return "simulator"

    async def start(self) -> None:
        self._sim = GBMSimulator(symbols=self._symbols)
        # Seed immediately so snapshots have data before the first tick
        self._emit_all(self._sim.step())
        self._task = asyncio.create_task(self._run_loop(), name="simulator-loop")
        logger.info("Simulator started with %d symbols", len(self._symbols))

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Simulator stopped")

    def _emit_all(self, quotes: dict[str, tuple[float, float]]) -> None:
        ts = now_ms()
        for i, (symbol, (bid, ask)) in enumerate(quotes.items()):
            self._dispatch(render_event(symbol, bid, ask, ts, shape=self._steps + i))
        self._steps += 1
        if self._noise_every and self._steps % self._noise_every == 0:
            self._dispatch({"type": "AccountStatus", "data": {"status": "ok", "ts": ts}})

    async def _run_loop(self) -> None:
        """Core loop: step the simulation, emit events, sleep."""
        while True:
            try:
                if self._sim:
                    self._emit_all(self._sim.step())
            except Exception:
                logger.exception("Simulator step failed")
            await asyncio.sleep(self._interval)
