"""Two-stage current-price pipeline: fetch a quote, persist it, respond.

Each request threads an immutable ``PipelineContext`` through the stages.
Stage 1 turns the ticker into a ``PriceQuote``; stage 2 receives the
context plus that quote and writes a ``PriceObservation``. The response is
only built after the write succeeds, so callers never see an unsaved price.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, field_validator

from crypto_ticker.core.models import (
    PriceObservation,
    PriceQuote,
    Ticker,
    TickerPrice,
    format_timestamp,
    validate_ticker,
)
from crypto_ticker.feed.client import PriceFeed
from crypto_ticker.storage.store import TimeSeriesStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineState(StrEnum):
    """Lifecycle of a single current-price request."""

    START = "START"
    FETCHING = "FETCHING"
    PERSISTING = "PERSISTING"
    DONE = "DONE"
    FAILED = "FAILED"


class PipelineContext(BaseModel):
    """Values carried between stages, scoped to one pipeline invocation."""

    model_config = ConfigDict(frozen=True)

    ticker: Ticker
    quote: PriceQuote | None = None

    @field_validator("ticker")
    @classmethod
    def ticker_not_empty(cls, v: str) -> str:
        return validate_ticker(v)

    def with_quote(self, quote: PriceQuote) -> PipelineContext:
        return self.model_copy(update={"quote": quote})


class FetchQuoteStage:
    """Stage 1: ask the price feed for the ticker's current quote."""

    name = "fetch_quote"

    def __init__(self, feed: PriceFeed) -> None:
        self._feed = feed

    async def __call__(self, context: PipelineContext) -> PriceQuote:
        return await self._feed.fetch_price(context.ticker)


class PersistObservationStage:
    """Stage 2: append the fetched quote to the ticker's time series.

    Parameters
    ----------
    store : TimeSeriesStore
        Destination of the observation.
    clock : Callable[[], datetime]
        Source of the observation timestamp. Defaults to the UTC wall clock.
    """

    name = "persist_observation"

    def __init__(self, store: TimeSeriesStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def __call__(
        self, context: PipelineContext, quote: PriceQuote
    ) -> PriceObservation:
        timestamp = format_timestamp(self._clock())
        await self._store.append(context.ticker, timestamp, quote.usd)
        return PriceObservation(
            ticker=context.ticker,
            timestamp=timestamp,
            price_usd=quote.usd,
        )


class PriceResolver:
    """Runs fetch → persist → respond for one ticker per call.

    Holds no per-request state; concurrent ``resolve`` calls are
    independent. Errors from either stage propagate unchanged and no stage
    is retried.
    """

    def __init__(
        self,
        feed: PriceFeed,
        store: TimeSeriesStore,
        clock: Clock = utc_now,
    ) -> None:
        self._fetch = FetchQuoteStage(feed)
        self._persist = PersistObservationStage(store, clock)

    async def resolve(self, ticker: str) -> TickerPrice:
        run_id = uuid4().hex[:8]
        state = PipelineState.START
        context = PipelineContext(ticker=ticker)

        try:
            state = self._transition(run_id, ticker, state, PipelineState.FETCHING)
            quote = await self._fetch(context)
            context = context.with_quote(quote)

            state = self._transition(run_id, ticker, state, PipelineState.PERSISTING)
            observation = await self._persist(context, quote)
        except Exception as e:
            self._transition(run_id, ticker, state, PipelineState.FAILED)
            logger.warning(
                "Pipeline %s for %s failed while %s: %s",
                run_id, ticker, state, e,
            )
            raise

        self._transition(run_id, ticker, state, PipelineState.DONE)
        return TickerPrice(
            ticker=context.ticker,
            latest_price=PriceQuote(usd=observation.price_usd),
        )

    @staticmethod
    def _transition(
        run_id: str, ticker: str, old: PipelineState, new: PipelineState
    ) -> PipelineState:
        logger.debug("Pipeline %s (%s): %s -> %s", run_id, ticker, old, new)
        return new
