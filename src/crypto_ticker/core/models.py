"""Pydantic data models — the system's type contracts.

Observations are keyed like a wide-column table: the ticker is the partition
key and ``"price_" + timestamp`` is the sort key. Timestamps are fixed-width
UTC strings with millisecond precision, so lexical order of sort keys is
chronological order.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Type Aliases ---

Ticker = str

# --- Enumerations ---


class StorageBackend(StrEnum):
    """Supported time-series storage backends."""

    SQLITE = "sqlite"


# --- Constants ---

DEFAULT_PAGE_SIZE = 25
SORT_KEY_PREFIX = "price_"
QUOTE_CURRENCY = "usd"

_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


# --- Key helpers ---


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC.

    Naive datetimes are taken to be UTC already. Sub-millisecond digits are
    truncated, not rounded, so a later instant never renders earlier.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}Z"
    )


def validate_timestamp(value: str) -> str:
    """Reject timestamps that would break lexical ordering of sort keys."""
    if not _TIMESTAMP_RE.match(value):
        raise ValueError(
            f"timestamp must look like 2024-01-01T00:00:00.000Z, got {value!r}"
        )
    return value


def sort_key(timestamp: str) -> str:
    """Sort-key component for an observation taken at ``timestamp``."""
    return f"{SORT_KEY_PREFIX}{timestamp}"


def validate_ticker(value: str) -> str:
    if not value:
        raise ValueError("ticker must be a non-empty string")
    return value


# --- Price models ---


class PriceQuote(BaseModel):
    """A single quote from the price feed, in the fixed quote currency."""

    model_config = ConfigDict(frozen=True)

    usd: float

    @field_validator("usd")
    @classmethod
    def usd_is_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"usd must be a finite number, got {v}")
        return v


class PriceObservation(BaseModel):
    """One persisted price reading for a ticker."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ticker: Ticker
    timestamp: str
    price_usd: float = Field(alias="priceUSD")

    @field_validator("ticker")
    @classmethod
    def ticker_not_empty(cls, v: str) -> str:
        return validate_ticker(v)

    @field_validator("timestamp")
    @classmethod
    def timestamp_fixed_width(cls, v: str) -> str:
        return validate_timestamp(v)

    @property
    def sort_key(self) -> str:
        return sort_key(self.timestamp)


class ObservationRef(BaseModel):
    """Storage key of a written observation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ticker: Ticker
    sort_key: str = Field(alias="sortKey")


class HistoryPage(BaseModel):
    """One page of a ticker's history, newest first."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: list[PriceObservation]
    next_token: str | None = Field(default=None, alias="nextToken")
    limit: int = DEFAULT_PAGE_SIZE


class TickerPrice(BaseModel):
    """Current-price result: the ticker and its freshly persisted quote."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ticker: Ticker
    latest_price: PriceQuote = Field(alias="latestPrice")
