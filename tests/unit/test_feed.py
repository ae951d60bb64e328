"""Tests for crypto_ticker.feed.client (CoinGeckoClient)."""

from __future__ import annotations

import httpx
import pytest
import respx

from crypto_ticker.core.config import FeedConfig
from crypto_ticker.core.exceptions import (
    TickerNotFoundError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from crypto_ticker.core.models import PriceQuote
from crypto_ticker.feed.client import CoinGeckoClient, PriceFeed, extract_quote

PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"


# --- Fixtures ---


@pytest.fixture
def feed_config() -> FeedConfig:
    return FeedConfig(rate_limit=500, request_timeout=5)


@pytest.fixture
async def client(feed_config: FeedConfig) -> CoinGeckoClient:
    async with CoinGeckoClient(feed_config) as c:
        yield c


# --- extract_quote ---


class TestExtractQuote:
    def test_plucks_requested_ticker(self):
        payload = {"bitcoin": {"usd": 50000}, "ethereum": {"usd": 2500}}
        assert extract_quote(payload, "bitcoin") == PriceQuote(usd=50000.0)

    def test_ticker_matched_verbatim(self):
        with pytest.raises(TickerNotFoundError):
            extract_quote({"bitcoin": {"usd": 1}}, "Bitcoin")

    def test_empty_body_is_not_found(self):
        with pytest.raises(TickerNotFoundError) as exc_info:
            extract_quote({}, "nope")
        assert exc_info.value.context["ticker"] == "nope"

    def test_non_mapping_is_malformed(self):
        with pytest.raises(UpstreamMalformedError, match="JSON object"):
            extract_quote([{"usd": 1}], "bitcoin")

    def test_missing_currency_is_malformed(self):
        with pytest.raises(UpstreamMalformedError, match="no 'usd' quote"):
            extract_quote({"bitcoin": {"eur": 1}}, "bitcoin")

    @pytest.mark.parametrize("value", ["50000", None, True, {"v": 1}])
    def test_non_numeric_is_malformed(self, value):
        with pytest.raises(UpstreamMalformedError):
            extract_quote({"bitcoin": {"usd": value}}, "bitcoin")

    def test_quote_too_large_for_float_is_malformed(self):
        with pytest.raises(UpstreamMalformedError) as exc_info:
            extract_quote({"bitcoin": {"usd": 10**400}}, "bitcoin")
        assert exc_info.value.context["reason"] == "non_finite"

    def test_float_quote(self):
        assert extract_quote({"shib": {"usd": 8.5e-06}}, "shib").usd == 8.5e-06


# --- fetch_price ---


class TestFetchPrice:
    @respx.mock
    async def test_returns_quote(self, client: CoinGeckoClient):
        respx.get(PRICE_URL).mock(
            return_value=httpx.Response(200, json={"bitcoin": {"usd": 50000}})
        )
        quote = await client.fetch_price("bitcoin")
        assert quote.usd == 50000.0

    @respx.mock
    async def test_sends_ids_and_fixed_currency(self, client: CoinGeckoClient):
        route = respx.get(PRICE_URL).mock(
            return_value=httpx.Response(200, json={"ethereum": {"usd": 2500.5}})
        )
        await client.fetch_price("ethereum")
        params = route.calls.last.request.url.params
        assert params["ids"] == "ethereum"
        assert params["vs_currencies"] == "usd"

    @respx.mock
    async def test_unknown_ticker_not_found(self, client: CoinGeckoClient):
        respx.get(PRICE_URL).mock(return_value=httpx.Response(200, json={}))
        with pytest.raises(TickerNotFoundError):
            await client.fetch_price("not-a-coin")

    @respx.mock
    @pytest.mark.parametrize("status", [400, 404, 429, 500, 503])
    async def test_non_2xx_is_unavailable(self, client: CoinGeckoClient, status: int):
        respx.get(PRICE_URL).mock(return_value=httpx.Response(status, text="nope"))
        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.fetch_price("bitcoin")
        assert exc_info.value.context["status_code"] == status

    @respx.mock
    async def test_no_retry_on_failure(self, client: CoinGeckoClient):
        route = respx.get(PRICE_URL).mock(return_value=httpx.Response(503))
        with pytest.raises(UpstreamUnavailableError):
            await client.fetch_price("bitcoin")
        assert route.call_count == 1

    @respx.mock
    async def test_connection_error_is_unavailable(self, client: CoinGeckoClient):
        respx.get(PRICE_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(UpstreamUnavailableError, match="request failed"):
            await client.fetch_price("bitcoin")

    @respx.mock
    async def test_timeout_is_unavailable(self, client: CoinGeckoClient):
        respx.get(PRICE_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(UpstreamUnavailableError):
            await client.fetch_price("bitcoin")

    @respx.mock
    async def test_invalid_json_is_malformed(self, client: CoinGeckoClient):
        respx.get(PRICE_URL).mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )
        with pytest.raises(UpstreamMalformedError) as exc_info:
            await client.fetch_price("bitcoin")
        assert exc_info.value.context["reason"] == "invalid_json"

    async def test_empty_ticker_rejected(self, client: CoinGeckoClient):
        with pytest.raises(ValueError, match="non-empty"):
            await client.fetch_price("")


class TestClientConfig:
    @respx.mock
    async def test_custom_base_url(self):
        route = respx.get("http://localhost:9999/api/v3/simple/price").mock(
            return_value=httpx.Response(200, json={"bitcoin": {"usd": 1}})
        )
        async with CoinGeckoClient(FeedConfig(base_url="http://localhost:9999/")) as c:
            await c.fetch_price("bitcoin")
        assert route.called

    @respx.mock
    async def test_api_key_header(self):
        route = respx.get(PRICE_URL).mock(
            return_value=httpx.Response(200, json={"bitcoin": {"usd": 1}})
        )
        async with CoinGeckoClient(FeedConfig(api_key="demo-key")) as c:
            await c.fetch_price("bitcoin")
        assert route.calls.last.request.headers["x-cg-demo-api-key"] == "demo-key"

    @respx.mock
    async def test_no_api_key_header_by_default(self, client: CoinGeckoClient):
        route = respx.get(PRICE_URL).mock(
            return_value=httpx.Response(200, json={"bitcoin": {"usd": 1}})
        )
        await client.fetch_price("bitcoin")
        assert "x-cg-demo-api-key" not in route.calls.last.request.headers


class TestProtocolConformance:
    def test_client_is_price_feed(self, feed_config: FeedConfig):
        assert isinstance(CoinGeckoClient(feed_config), PriceFeed)
