"""API-specific request/response schemas (Pydantic v2).

Field names on the wire are camelCase (``latestPrice``, ``priceUSD``,
``nextToken``); FastAPI serializes response models by alias.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None


# -- Prices --


class PriceQuoteResponse(BaseModel):
    usd: float


class TickerPriceResponse(BaseModel):
    """Response for GET /api/tickers/{ticker}."""

    model_config = ConfigDict(populate_by_name=True)

    ticker: str
    latest_price: PriceQuoteResponse = Field(alias="latestPrice")


class ObservationResponse(BaseModel):
    """Single stored observation in API response format."""

    model_config = ConfigDict(populate_by_name=True)

    ticker: str
    timestamp: str
    price_usd: float = Field(alias="priceUSD")


class HistoryResponse(BaseModel):
    """One page of history. ``nextToken`` is omitted on the last page."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[ObservationResponse]
    next_token: str | None = Field(default=None, alias="nextToken")


class TickerListResponse(BaseModel):
    """Tickers with at least one stored observation."""

    tickers: list[str]


# -- Health --


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str = "ok"
    version: str
    storage_backend: str
    total_observations: int
