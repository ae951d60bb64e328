"""Shared pytest fixtures for crypto-ticker."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from crypto_ticker.core.config import StorageConfig
from crypto_ticker.core.models import PriceQuote
from crypto_ticker.storage.store import SqliteTimeSeriesStore


class StubFeed:
    """In-memory PriceFeed: quotes from a dict, or a forced error."""

    def __init__(self, quotes: dict[str, float] | None = None) -> None:
        self.quotes = dict(quotes or {})
        self.error: Exception | None = None
        self.calls: list[str] = []

    async def fetch_price(self, ticker: str) -> PriceQuote:
        from crypto_ticker.core.exceptions import TickerNotFoundError

        self.calls.append(ticker)
        if self.error is not None:
            raise self.error
        if ticker not in self.quotes:
            raise TickerNotFoundError(
                f"Ticker not found in price feed: {ticker!r}",
                context={"ticker": ticker},
            )
        return PriceQuote(usd=self.quotes[ticker])


class StepClock:
    """Deterministic clock: each call returns the previous instant + step."""

    def __init__(
        self,
        start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
        step: timedelta = timedelta(milliseconds=1),
    ) -> None:
        self._next = start
        self._step = step

    def __call__(self) -> datetime:
        now = self._next
        self._next = now + self._step
        return now


@pytest.fixture
def stub_feed() -> StubFeed:
    return StubFeed({"bitcoin": 50000.0, "ethereum": 2500.5, "Dogecoin": 0.08})


@pytest.fixture
def step_clock() -> StepClock:
    return StepClock()


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(sqlite_path=str(tmp_path / "prices.db"), max_page_size=100)


@pytest.fixture
async def store(storage_config: StorageConfig) -> SqliteTimeSeriesStore:
    """An initialized SqliteTimeSeriesStore on a temp file."""
    s = SqliteTimeSeriesStore(storage_config)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
async def bitcoin_history(store: SqliteTimeSeriesStore) -> SqliteTimeSeriesStore:
    """Store holding five bitcoin observations one minute apart (prices 100..104)."""
    for i in range(5):
        await store.append("bitcoin", f"2024-01-01T00:0{i}:00.000Z", 100.0 + i)
    return store
