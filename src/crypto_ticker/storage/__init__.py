"""Per-ticker price time series: store protocol, SQLite backend, and tokens."""

from crypto_ticker.storage.store import (
    SqliteTimeSeriesStore,
    TimeSeriesStore,
    create_store,
)
from crypto_ticker.storage.tokens import decode_token, encode_token

__all__ = [
    "SqliteTimeSeriesStore",
    "TimeSeriesStore",
    "create_store",
    "decode_token",
    "encode_token",
]
