"""crypto_ticker.core — Foundation types, config, and exceptions."""

from crypto_ticker.core.config import (
    APIConfig,
    FeedConfig,
    LoggingConfig,
    StorageConfig,
    TickerConfig,
    load_config,
)
from crypto_ticker.core.exceptions import (
    ConfigError,
    CryptoTickerError,
    FeedError,
    InvalidTokenError,
    StorageError,
    StoreUnavailableError,
    TickerNotFoundError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from crypto_ticker.core.models import (
    DEFAULT_PAGE_SIZE,
    QUOTE_CURRENCY,
    SORT_KEY_PREFIX,
    HistoryPage,
    ObservationRef,
    PriceObservation,
    PriceQuote,
    StorageBackend,
    Ticker,
    TickerPrice,
    format_timestamp,
    sort_key,
)

__all__ = [
    # Type aliases
    "Ticker",
    # Enums
    "StorageBackend",
    # Constants
    "DEFAULT_PAGE_SIZE",
    "QUOTE_CURRENCY",
    "SORT_KEY_PREFIX",
    # Models
    "PriceQuote",
    "PriceObservation",
    "ObservationRef",
    "HistoryPage",
    "TickerPrice",
    # Key helpers
    "format_timestamp",
    "sort_key",
    # Config
    "TickerConfig",
    "FeedConfig",
    "StorageConfig",
    "APIConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "CryptoTickerError",
    "ConfigError",
    "FeedError",
    "TickerNotFoundError",
    "UpstreamUnavailableError",
    "UpstreamMalformedError",
    "StorageError",
    "StoreUnavailableError",
    "InvalidTokenError",
]
