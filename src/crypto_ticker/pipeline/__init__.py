"""Current-price pipeline and query routing."""

from crypto_ticker.pipeline.resolver import (
    FetchQuoteStage,
    PersistObservationStage,
    PipelineContext,
    PipelineState,
    PriceResolver,
)
from crypto_ticker.pipeline.router import QueryRouter

__all__ = [
    "FetchQuoteStage",
    "PersistObservationStage",
    "PipelineContext",
    "PipelineState",
    "PriceResolver",
    "QueryRouter",
]
