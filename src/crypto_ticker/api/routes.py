"""FastAPI route definitions for the crypto-ticker API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

import crypto_ticker
from crypto_ticker.api.deps import get_config, get_router, get_store
from crypto_ticker.api.schemas import (
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    ObservationResponse,
    PriceQuoteResponse,
    TickerListResponse,
    TickerPriceResponse,
)
from crypto_ticker.core.models import DEFAULT_PAGE_SIZE
from crypto_ticker.pipeline.router import QueryRouter
from crypto_ticker.storage.store import TimeSeriesStore

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid continuation token"},
    401: {"model": ErrorResponse, "description": "Missing or wrong API key"},
    404: {"model": ErrorResponse, "description": "Ticker unknown to the price feed"},
    502: {"model": ErrorResponse, "description": "Price feed unavailable or malformed"},
    503: {"model": ErrorResponse, "description": "Store unavailable"},
}


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: TimeSeriesStore = Depends(get_store),
    config=Depends(get_config),
):
    """System health and basic statistics."""
    total = await store.count_observations()
    return HealthResponse(
        status="ok",
        version=crypto_ticker.__version__,
        storage_backend=str(config.storage.backend.value),
        total_observations=total,
    )


# -- Tickers --


@router.get(
    "/tickers",
    response_model=TickerListResponse,
    responses={k: _ERRORS[k] for k in (401, 503)},
)
async def list_tickers(store: TimeSeriesStore = Depends(get_store)):
    """Tickers that have at least one stored observation."""
    return TickerListResponse(tickers=await store.list_tickers())


@router.get(
    "/tickers/{ticker}",
    response_model=TickerPriceResponse,
    responses={k: _ERRORS[k] for k in (401, 404, 502, 503)},
)
async def get_ticker_price(
    ticker: str,
    query_router: QueryRouter = Depends(get_router),
):
    """Fetch the live price, record it, and return it."""
    result = await query_router.ticker(ticker)
    return TickerPriceResponse(
        ticker=result.ticker,
        latest_price=PriceQuoteResponse(usd=result.latest_price.usd),
    )


@router.get(
    "/tickers/{ticker}/history",
    response_model=HistoryResponse,
    response_model_exclude_none=True,
    responses={k: _ERRORS[k] for k in (400, 401, 503)},
)
async def get_price_history(
    ticker: str,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=1000),
    next_token: str | None = Query(None, alias="nextToken"),
    query_router: QueryRouter = Depends(get_router),
):
    """Stored observations for a ticker, newest first. Never calls the feed."""
    page = await query_router.price_history(ticker, limit=limit, next_token=next_token)
    return HistoryResponse(
        items=[
            ObservationResponse(
                ticker=obs.ticker,
                timestamp=obs.timestamp,
                price_usd=obs.price_usd,
            )
            for obs in page.items
        ],
        next_token=page.next_token,
    )
