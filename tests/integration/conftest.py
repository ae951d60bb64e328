"""Integration test fixtures: real HTTP client and SQLite, mocked network."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx

from crypto_ticker.core.config import FeedConfig, StorageConfig, TickerConfig
from crypto_ticker.feed.client import CoinGeckoClient
from crypto_ticker.storage.store import SqliteTimeSeriesStore

COINGECKO = "https://api.coingecko.com"

QUOTES = {
    "bitcoin": {"usd": 50000},
    "ethereum": {"usd": 2500.5},
}


def _simple_price(request: httpx.Request) -> httpx.Response:
    """Answer like /api/v3/simple/price: unknown ids are silently omitted."""
    ids = request.url.params.get("ids", "").split(",")
    return httpx.Response(200, json={i: QUOTES[i] for i in ids if i in QUOTES})


@pytest.fixture
def coingecko():
    """respx router standing in for the CoinGecko API."""
    with respx.mock(base_url=COINGECKO, assert_all_called=False) as router:
        router.get("/api/v3/simple/price", name="simple_price").mock(
            side_effect=_simple_price
        )
        yield router


@pytest.fixture
def integration_config(tmp_path: Path) -> TickerConfig:
    return TickerConfig(
        feed=FeedConfig(rate_limit=500),
        storage=StorageConfig(sqlite_path=str(tmp_path / "integration.db")),
    )


@pytest.fixture
async def integration_store(integration_config: TickerConfig) -> SqliteTimeSeriesStore:
    """An initialized SqliteTimeSeriesStore for integration tests."""
    store = SqliteTimeSeriesStore(integration_config.storage)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def feed_client(integration_config: TickerConfig, coingecko) -> CoinGeckoClient:
    async with CoinGeckoClient(integration_config.feed) as client:
        yield client
