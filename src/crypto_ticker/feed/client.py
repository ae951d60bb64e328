"""CoinGecko price feed — direct HTTP implementation.

Uses the unauthenticated ``/api/v3/simple/price`` endpoint via httpx. The
response is a mapping of ticker id to per-currency quotes::

    {"bitcoin": {"usd": 50000}}

Unknown ids are silently dropped from the body, which is how a missing
ticker is detected. No retries happen here; the caller owns retry policy.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from aiolimiter import AsyncLimiter

from crypto_ticker.core.config import FeedConfig
from crypto_ticker.core.exceptions import (
    TickerNotFoundError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from crypto_ticker.core.models import QUOTE_CURRENCY, PriceQuote, validate_ticker

logger = logging.getLogger(__name__)

_PRICE_PATH = "/api/v3/simple/price"
_API_KEY_HEADER = "x-cg-demo-api-key"


@runtime_checkable
class PriceFeed(Protocol):
    """Consumer-facing interface for fetching a live quote.

    The pipeline depends only on this protocol, never on a concrete
    implementation.
    """

    async def fetch_price(self, ticker: str) -> PriceQuote:
        """Return the current quote for ``ticker``.

        Raises
        ------
        TickerNotFoundError
            The feed does not know the ticker.
        UpstreamUnavailableError
            Transport failure, timeout, or non-2xx status.
        UpstreamMalformedError
            The body is not the expected JSON shape.
        """
        ...


def extract_quote(payload: Any, ticker: str) -> PriceQuote:
    """Pluck the quote for ``ticker`` out of a simple-price response body.

    Parameters
    ----------
    payload : Any
        Decoded JSON body, expected to be ``{ticker: {"usd": number}}``.
    ticker : str
        The ticker that was requested. Matched verbatim.
    """
    if not isinstance(payload, dict):
        raise UpstreamMalformedError(
            f"Expected a JSON object from price feed, got {type(payload).__name__}",
            context={"ticker": ticker, "reason": "not_a_mapping"},
        )

    entry = payload.get(ticker)
    if entry is None:
        raise TickerNotFoundError(
            f"Ticker not found in price feed: {ticker!r}",
            context={"ticker": ticker},
        )

    if not isinstance(entry, dict) or QUOTE_CURRENCY not in entry:
        raise UpstreamMalformedError(
            f"Price feed entry for {ticker!r} has no {QUOTE_CURRENCY!r} quote",
            context={"ticker": ticker, "reason": "missing_currency"},
        )

    value = entry[QUOTE_CURRENCY]
    # bool is an int subclass; a JSON true is not a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UpstreamMalformedError(
            f"Price feed quote for {ticker!r} is not numeric: {value!r}",
            context={"ticker": ticker, "reason": "non_numeric"},
        )

    try:
        return PriceQuote(usd=float(value))
    except (ValueError, OverflowError) as e:
        raise UpstreamMalformedError(
            f"Price feed quote for {ticker!r} is not a finite number",
            context={"ticker": ticker, "reason": "non_finite"},
        ) from e


class CoinGeckoClient:
    """Fetches live quotes from CoinGecko's simple-price API.

    Outbound requests pass through a token bucket so a busy API stays under
    the upstream's free-tier throttle. Use via
    ``async with CoinGeckoClient(config) as feed:``.

    Parameters
    ----------
    config : FeedConfig
        Base URL, timeout, rate limit (requests/minute) and optional API key.
    """

    def __init__(self, config: FeedConfig) -> None:
        self._config = config
        self._limiter = AsyncLimiter(max_rate=config.rate_limit, time_period=60.0)
        headers = {"User-Agent": config.user_agent, "Accept": "application/json"}
        if config.api_key:
            headers[_API_KEY_HEADER] = config.api_key
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> CoinGeckoClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    async def fetch_price(self, ticker: str) -> PriceQuote:
        """Fetch the current USD quote for a single ticker."""
        validate_ticker(ticker)
        url = f"{self._config.base_url}{_PRICE_PATH}"
        params = {"ids": ticker, "vs_currencies": QUOTE_CURRENCY}

        try:
            async with self._limiter:
                response = await self._client.get(_PRICE_PATH, params=params)
        except httpx.HTTPError as e:
            logger.error("Price feed request error for %s: %s", ticker, e)
            raise UpstreamUnavailableError(
                f"Price feed request failed: {e}",
                context={"ticker": ticker, "url": url, "error": str(e)},
            ) from e

        if not response.is_success:
            logger.error(
                "Price feed HTTP error for %s: %s %s",
                ticker,
                response.status_code,
                response.text[:200],
            )
            raise UpstreamUnavailableError(
                f"HTTP {response.status_code} from price feed",
                context={
                    "ticker": ticker,
                    "url": url,
                    "status_code": response.status_code,
                },
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Price feed returned non-JSON body for %s", ticker)
            raise UpstreamMalformedError(
                "Price feed response is not valid JSON",
                context={
                    "ticker": ticker,
                    "reason": "invalid_json",
                    "body": response.text[:200],
                },
            ) from e

        quote = extract_quote(payload, ticker)
        logger.debug("Fetched %s quote for %s: %s", QUOTE_CURRENCY, ticker, quote.usd)
        return quote
