"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crypto_ticker.api.deps import AppState, api_key_middleware
from crypto_ticker.api.routes import router
from crypto_ticker.api.schemas import ErrorResponse
from crypto_ticker.core.config import TickerConfig, load_config
from crypto_ticker.core.exceptions import (
    ConfigError,
    CryptoTickerError,
    InvalidTokenError,
    StoreUnavailableError,
    TickerNotFoundError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from crypto_ticker.feed.client import CoinGeckoClient, PriceFeed
from crypto_ticker.pipeline.resolver import Clock, PriceResolver, utc_now
from crypto_ticker.pipeline.router import QueryRouter
from crypto_ticker.storage.store import create_store

_STATUS_MAP: dict[type[CryptoTickerError], int] = {
    ConfigError: 400,
    InvalidTokenError: 400,
    TickerNotFoundError: 404,
    UpstreamUnavailableError: 502,
    UpstreamMalformedError: 502,
    StoreUnavailableError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config or load_config()
    store = await create_store(config.storage)

    feed = app.state._pending_feed
    owned_feed = None
    if feed is None:
        owned_feed = feed = CoinGeckoClient(config.feed)

    resolver = PriceResolver(feed, store, clock=app.state._pending_clock)
    app.state.app_state = AppState(
        config=config,
        store=store,
        router=QueryRouter(resolver, store),
    )

    yield

    if owned_feed is not None:
        await owned_feed.close()
    await store.close()


def create_app(
    config: TickerConfig | None = None,
    feed: PriceFeed | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``feed`` and ``clock`` replace the CoinGecko client and the wall clock,
    mainly for tests; a supplied feed is not closed on shutdown.
    """
    import crypto_ticker

    app = FastAPI(
        title="Crypto Ticker API",
        description="Current and historical crypto prices",
        version=crypto_ticker.__version__,
        lifespan=lifespan,
    )

    # Stash collaborators so lifespan can retrieve them
    app.state._pending_config = config
    app.state._pending_feed = feed
    app.state._pending_clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Checks the loaded config per request, so a key from YAML/env applies too
    app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    @app.exception_handler(CryptoTickerError)
    async def ticker_exception_handler(request: Request, exc: CryptoTickerError):
        status = _STATUS_MAP.get(type(exc), 500)
        return JSONResponse(
            status_code=status,
            content=ErrorResponse(error=exc.kind, detail=str(exc)).model_dump(),
        )

    return app
