"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse

from crypto_ticker.api.schemas import ErrorResponse
from crypto_ticker.core.config import TickerConfig
from crypto_ticker.pipeline.router import QueryRouter
from crypto_ticker.storage.store import TimeSeriesStore


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: TickerConfig
    store: TimeSeriesStore
    router: QueryRouter


def get_config(request: Request) -> TickerConfig:
    """Dependency: retrieve config."""
    return request.app.state.app_state.config


def get_store(request: Request) -> TimeSeriesStore:
    """Dependency: retrieve the time-series store."""
    return request.app.state.app_state.store


def get_router(request: Request) -> QueryRouter:
    """Dependency: retrieve the query router."""
    return request.app.state.app_state.router


EXEMPT_PATHS = {"/api/health"}


async def api_key_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: validate X-API-Key header when authentication is enabled."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    config = request.app.state.app_state.config
    if config.api.api_key:
        api_key = request.headers.get("X-API-Key")
        if api_key != config.api.api_key:
            return JSONResponse(
                status_code=401,
                content=ErrorResponse(
                    error="Unauthorized", detail="Invalid or missing API key"
                ).model_dump(),
            )
    return await call_next(request)
