"""Tests for the liveness watchdog."""

import asyncio

import pytest

from quote_relay.market.watchdog import LivenessWatchdog, WatchdogState

LAST_EVENT = 1_700_000_000_000


def make_watchdog(make_source, connected=False, stale_after_ms=120000, **kwargs):
    source = make_source(lambda event: None, connected=connected)
    source.last_event_at = LAST_EVENT
    fired: list[int] = []
    watchdog = LivenessWatchdog(source, stale_after_ms=stale_after_ms, on_stale=fired.append, **kwargs)
    return watchdog, source, fired


class TestLivenessWatchdog:
    """Unit tests for LivenessWatchdog.check()."""

    def test_fires_when_disconnected_and_stale(self, make_source):
        """Disconnected for 121s against a 120s threshold triggers a restart."""
        watchdog, _, fired = make_watchdog(make_source)
        assert watchdog.check(now=LAST_EVENT + 121000) is WatchdogState.RESTART_TRIGGERED
        assert fired == [121000]

    def test_quiet_below_threshold(self, make_source):
        """Disconnected for 119s does not trigger."""
        watchdog, _, fired = make_watchdog(make_source)
        assert watchdog.check(now=LAST_EVENT + 119000) is WatchdogState.OK
        assert fired == []

    def test_exact_threshold_does_not_fire(self, make_source):
        """Staleness must exceed, not equal, the threshold."""
        watchdog, _, fired = make_watchdog(make_source)
        assert watchdog.check(now=LAST_EVENT + 120000) is WatchdogState.OK

    def test_connected_never_fires(self, make_source):
        """A connected upstream is never declared stale, however quiet."""
        watchdog, _, fired = make_watchdog(make_source, connected=True)
        assert watchdog.check(now=LAST_EVENT + 10_000_000) is WatchdogState.OK
        assert fired == []

    def test_disabled_never_fires(self, make_source):
        """A zero threshold disables the watchdog."""
        watchdog, _, fired = make_watchdog(make_source, stale_after_ms=0)
        assert not watchdog.enabled
        assert watchdog.check(now=LAST_EVENT + 10_000_000) is WatchdogState.OK
        assert fired == []

    def test_never_received_event(self, make_source):
        """With no event ever received, age counts from the epoch."""
        watchdog, source, fired = make_watchdog(make_source)
        source.last_event_at = 0
        assert watchdog.is_stale(now=LAST_EVENT)

    def test_restart_is_terminal(self, make_source):
        """on_stale runs once; later checks stay triggered."""
        watchdog, source, fired = make_watchdog(make_source)
        watchdog.check(now=LAST_EVENT + 121000)
        source.set_connected(True)
        assert watchdog.check(now=LAST_EVENT + 500000) is WatchdogState.RESTART_TRIGGERED
        assert len(fired) == 1

    def test_uses_clock(self, make_source):
        """Without an explicit time the injected clock is used."""
        watchdog, _, fired = make_watchdog(make_source, clock=lambda: LAST_EVENT + 121000)
        watchdog.check()
        assert fired == [121000]


@pytest.mark.asyncio
class TestLivenessWatchdogLoop:
    """The polling task."""

    async def test_loop_fires(self, make_source):
        """The polling loop calls on_stale once staleness is reached."""
        watchdog, _, fired = make_watchdog(
            make_source, poll_interval=0.01, clock=lambda: LAST_EVENT + 121000
        )
        watchdog.start()
        await asyncio.sleep(0.05)
        await watchdog.stop()
        assert fired == [121000]

    async def test_stop_is_idempotent(self, make_source):
        """stop() can be called repeatedly, even if never started."""
        watchdog, _, _ = make_watchdog(make_source, poll_interval=0.01)
        await watchdog.stop()
        watchdog.start()
        await watchdog.stop()
        await watchdog.stop()

    async def test_disabled_does_not_start(self, make_source):
        """A disabled watchdog starts no task."""
        watchdog, _, _ = make_watchdog(make_source, stale_after_ms=0)
        watchdog.start()
        assert watchdog._task is None
