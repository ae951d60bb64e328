"""Custom exception hierarchy for crypto-ticker."""

from typing import Any


class CryptoTickerError(Exception):
    """Base exception for all crypto-ticker errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    The `kind` attribute is the stable error name reported to API callers.
    """

    kind = "InternalError"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(CryptoTickerError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value (redacted for secrets)
    """

    kind = "ConfigError"


class FeedError(CryptoTickerError):
    """The external price feed could not produce a quote.

    Policy: surface to the caller unchanged. No retries inside the feed client.

    Context keys:
        ticker: str — the ticker being quoted
        url: str — the endpoint that was called
    """


class TickerNotFoundError(FeedError):
    """The feed answered, but the ticker is absent from its response body."""

    kind = "NotFound"


class UpstreamUnavailableError(FeedError):
    """Network failure, timeout, or non-2xx response from the feed.

    Context keys:
        status_code: int | None — HTTP status if a response was received
        error: str | None — transport error description
    """

    kind = "UpstreamUnavailable"


class UpstreamMalformedError(FeedError):
    """Feed response body does not have the expected shape.

    Context keys:
        reason: str — what was wrong with the body
        body: str | None — truncated response body for debugging
    """

    kind = "UpstreamMalformed"


class StorageError(CryptoTickerError):
    """Time-series store operation failed.

    Policy: raise immediately. A price is never reported unless persisted.

    Context keys:
        operation: str — "append", "query", "initialize", etc.
        table: str — the table involved
    """


class StoreUnavailableError(StorageError):
    """Underlying storage is unreachable, closed, or failed the operation."""

    kind = "StoreUnavailable"


class InvalidTokenError(StorageError):
    """A pagination continuation token could not be decoded or does not match.

    Context keys:
        ticker: str — the ticker being queried
        reason: str — why the token was rejected
    """

    kind = "InvalidToken"
