"""Tests for BrandSocketSource (fake Socket.IO client)."""

import asyncio

import pytest

from quote_relay.market.brand_socket import NAMESPACE, SOCKETIO_PATH, BrandSocketSource


def make_source(hub, factory, **kwargs) -> BrandSocketSource:
    return BrandSocketSource(
        brand_key="test-key",
        on_event=hub.ingest,
        server="wss://example.test/",
        env="DEMO",
        client_factory=factory,
        **kwargs,
    )


@pytest.mark.asyncio
class TestBrandSocketSource:
    """Unit tests for BrandSocketSource with a fake client."""

    async def test_client_options(self, hub, fake_socket_client):
        """Reconnection is unlimited with 1s base and 10s cap."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        client = fake_socket_client.holder["client"]

        assert client.options == {
            "reconnection": True,
            "reconnection_attempts": 0,
            "reconnection_delay": 1,
            "reconnection_delay_max": 10,
            "randomization_factor": 0.5,
        }
        await source.stop()

    async def test_connect_arguments(self, hub, fake_socket_client):
        """The brand namespace, path, env query and API key header are used."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        await asyncio.sleep(0.01)
        client = fake_socket_client.holder["client"]

        url, kwargs = client.connect_calls[0]
        assert url == "wss://example.test?type=DEMO"
        assert kwargs["headers"] == {"brand-api-key": "test-key"}
        assert kwargs["namespaces"] == [NAMESPACE]
        assert kwargs["socketio_path"] == SOCKETIO_PATH
        assert kwargs["transports"] == ["websocket", "polling"]
        assert kwargs["wait_timeout"] == 20.0
        await source.stop()

    async def test_stream_events_reach_store(self, hub, store, fake_socket_client):
        """``stream`` events are normalized into the store."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        client = fake_socket_client.holder["client"]

        client.trigger("stream", {"type": "QUOTE", "quote": {"symbol": "EURUSD", "bid": 1.08, "time": 5}})

        assert store.get("EURUSD").bid == 1.08
        assert source.last_event_at > 0
        await source.stop()

    async def test_out_of_range_price_does_not_drop_quote(self, hub, store, fake_socket_client):
        """An oversized number off the wire is ignored; the rest of the quote lands."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        client = fake_socket_client.holder["client"]

        client.trigger("stream", {"type": "QUOTE", "quote": {"symbol": "EURUSD", "bid": 1.1, "ask": 10**400}})

        quote = store.get("EURUSD")
        assert quote.bid == 1.1
        assert quote.ask is None
        await source.stop()

    async def test_non_quote_stream_event_updates_liveness(self, hub, store, fake_socket_client):
        """Any stream event counts for liveness even if it carries no quote."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        fake_socket_client.holder["client"].trigger("stream", {"type": "AccountStatus"})

        assert source.last_event_at > 0
        assert len(store) == 0
        await source.stop()

    async def test_handler_error_is_contained(self, fake_socket_client):
        """A failing handler does not propagate into the socket client."""

        def failing(event):
            raise RuntimeError("boom")

        source = BrandSocketSource("k", failing, client_factory=fake_socket_client)
        await source.start()
        fake_socket_client.holder["client"].trigger("stream", {"type": "QUOTE"})
        await source.stop()

    async def test_connection_state(self, hub, fake_socket_client):
        """connect/disconnect events drive ``connected``."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        client = fake_socket_client.holder["client"]
        assert not source.connected

        client.trigger("connect")
        assert source.connected

        client.trigger("disconnect", "transport close")
        assert not source.connected
        await source.stop()

    async def test_connect_error_recorded_and_cleared(self, hub, fake_socket_client):
        """connect_error is kept until the next successful connect."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        client = fake_socket_client.holder["client"]

        client.trigger("connect_error", {"message": "Invalid brand key"})
        assert source.last_connect_error == "Invalid brand key"

        client.trigger("connect")
        assert source.last_connect_error == ""
        await source.stop()

    async def test_connect_error_without_payload(self, hub, fake_socket_client):
        """A bare connect_error still records something."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        fake_socket_client.holder["client"].trigger("connect_error")
        assert source.last_connect_error == "connect_error"
        await source.stop()

    async def test_initial_connect_retries_with_backoff(self, hub, fake_socket_client):
        """Failed initial connects are retried with capped exponential backoff."""
        sleeps = []
        real_sleep = asyncio.sleep

        async def fake_sleep(delay):
            sleeps.append(delay)
            await real_sleep(0)

        def factory(**kwargs):
            client = fake_socket_client(**kwargs)
            client.connect_errors = [ConnectionError("refused")] * 5
            return client

        source = make_source(hub, factory, backoff_base=1.0, backoff_cap=4.0, sleep_fn=fake_sleep)
        await source.start()
        for _ in range(20):
            await real_sleep(0)

        assert sleeps[:5] == [1.0, 2.0, 4.0, 4.0, 4.0]
        assert source.connect_attempts == 6
        assert source.last_connect_error == "refused"
        await source.stop()

    async def test_stop_disconnects_and_is_idempotent(self, hub, fake_socket_client):
        """stop() cancels the loop, disconnects the client and can repeat."""
        source = make_source(hub, fake_socket_client)
        await source.start()
        client = fake_socket_client.holder["client"]
        client.trigger("connect")

        await source.stop()
        assert client.disconnected
        assert not source.connected
        assert source._task is None
        await source.stop()

    async def test_server_strips_trailing_slash(self, hub, fake_socket_client):
        """The status server string is normalized."""
        source = make_source(hub, fake_socket_client)
        assert source.server == "wss://example.test"
