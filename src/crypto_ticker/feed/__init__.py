"""Live price feed: protocol, CoinGecko client, and response parsing."""

from crypto_ticker.feed.client import CoinGeckoClient, PriceFeed, extract_quote

__all__ = [
    "CoinGeckoClient",
    "PriceFeed",
    "extract_quote",
]
