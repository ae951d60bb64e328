"""Dispatch of the two public operations. No business logic lives here."""

from __future__ import annotations

from crypto_ticker.core.exceptions import CryptoTickerError
from crypto_ticker.core.models import DEFAULT_PAGE_SIZE, HistoryPage, TickerPrice
from crypto_ticker.pipeline.resolver import PriceResolver
from crypto_ticker.storage.store import TimeSeriesStore


class QueryRouter:
    """Maps ``ticker`` to the price pipeline and ``price_history`` to the store.

    Both the HTTP API and the CLI go through this class. Errors are relayed
    to the caller exactly as raised. A router built without a resolver
    serves history only.
    """

    def __init__(
        self, resolver: PriceResolver | None, store: TimeSeriesStore
    ) -> None:
        self._resolver = resolver
        self._store = store

    async def ticker(self, ticker: str) -> TickerPrice:
        """Fetch, persist, and return the current price of ``ticker``."""
        if self._resolver is None:
            raise CryptoTickerError(
                "No price feed configured for this router",
                context={"ticker": ticker},
            )
        return await self._resolver.resolve(ticker)

    async def price_history(
        self,
        ticker: str,
        limit: int | None = None,
        next_token: str | None = None,
    ) -> HistoryPage:
        """Read a page of stored observations, newest first. Never calls the feed."""
        return await self._store.query_history(
            ticker,
            limit=limit if limit is not None else DEFAULT_PAGE_SIZE,
            # an empty token means "first page"
            next_token=next_token or None,
        )
