"""Integration tests for the REST API.

The app builds its own CoinGeckoClient and SQLite store from config, so
this covers the production wiring end to end with the network mocked.
"""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from crypto_ticker.api.app import create_app


pytestmark = pytest.mark.integration


@pytest.fixture
def client(integration_config, coingecko):
    with TestClient(create_app(config=integration_config)) as c:
        yield c


class TestEndToEnd:
    def test_price_then_history(self, client, coingecko):
        resp = client.get("/api/tickers/bitcoin")
        assert resp.status_code == 200
        assert resp.json() == {"ticker": "bitcoin", "latestPrice": {"usd": 50000.0}}

        history = client.get("/api/tickers/bitcoin/history").json()
        assert len(history["items"]) == 1
        assert history["items"][0]["priceUSD"] == 50000.0
        assert history["items"][0]["timestamp"].endswith("Z")
        assert coingecko["simple_price"].call_count == 1

    def test_request_sent_to_coingecko(self, client, coingecko):
        client.get("/api/tickers/ethereum")
        request = coingecko["simple_price"].calls.last.request
        assert request.url.params["ids"] == "ethereum"
        assert request.url.params["vs_currencies"] == "usd"
        assert request.headers["user-agent"].startswith("crypto-ticker")

    def test_unknown_ticker(self, client):
        resp = client.get("/api/tickers/not-a-coin")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NotFound"
        assert client.get("/api/tickers").json() == {"tickers": []}

    def test_upstream_outage(self, client, coingecko):
        coingecko["simple_price"].mock(side_effect=httpx.ConnectError("refused"))
        resp = client.get("/api/tickers/bitcoin")
        assert resp.status_code == 502
        assert resp.json()["error"] == "UpstreamUnavailable"

    def test_malformed_upstream(self, client, coingecko):
        coingecko["simple_price"].mock(
            return_value=httpx.Response(200, json={"bitcoin": {"usd": "lots"}})
        )
        resp = client.get("/api/tickers/bitcoin")
        assert resp.status_code == 502
        assert resp.json()["error"] == "UpstreamMalformed"

    def test_quote_beyond_float_range(self, client, coingecko):
        coingecko["simple_price"].mock(
            return_value=httpx.Response(200, text='{"bitcoin": {"usd": 1' + "0" * 400 + "}}")
        )
        resp = client.get("/api/tickers/bitcoin")
        assert resp.status_code == 502
        assert resp.json()["error"] == "UpstreamMalformed"

    def test_history_persists_across_app_restarts(
        self, integration_config, coingecko, step_clock
    ):
        with TestClient(create_app(config=integration_config, clock=step_clock)) as c:
            c.get("/api/tickers/bitcoin")
            c.get("/api/tickers/bitcoin")
        with TestClient(create_app(config=integration_config)) as c:
            body = c.get("/api/tickers/bitcoin/history", params={"limit": 1}).json()
            assert len(body["items"]) == 1
            assert "nextToken" in body
            assert c.get("/api/health").json()["total_observations"] == 2
