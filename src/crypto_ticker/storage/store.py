"""Time-series storage: Protocol definition, SQLite implementation, factory.

Observations live in one wide-column style table. The ticker is the
partition key (``hk``) and ``"price_" + timestamp`` the sort key (``sk``),
so a descending scan over ``sk`` within one ``hk`` is a newest-first
history without any secondary index.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar, Protocol, runtime_checkable

import aiosqlite

from crypto_ticker.core.config import StorageConfig
from crypto_ticker.core.exceptions import StoreUnavailableError
from crypto_ticker.core.models import (
    DEFAULT_PAGE_SIZE,
    SORT_KEY_PREFIX,
    HistoryPage,
    ObservationRef,
    PriceObservation,
    StorageBackend as StorageBackendEnum,
    sort_key,
    validate_ticker,
    validate_timestamp,
)
from crypto_ticker.storage.tokens import decode_token, encode_token

logger = logging.getLogger(__name__)

_TABLE = "price_history"


def _prefix_upper_bound(prefix: str) -> str:
    """Smallest string greater than every string starting with ``prefix``."""
    return prefix[:-1] + chr(ord(prefix[-1]) + 1)


@runtime_checkable
class TimeSeriesStore(Protocol):
    """Append-only per-ticker price log."""

    async def append(
        self, ticker: str, timestamp: str, price_usd: float
    ) -> ObservationRef: ...
    async def query_history(
        self,
        ticker: str,
        limit: int = DEFAULT_PAGE_SIZE,
        next_token: str | None = None,
    ) -> HistoryPage: ...
    async def list_tickers(self) -> list[str]: ...
    async def count_observations(self, ticker: str | None = None) -> int: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


class SqliteTimeSeriesStore:
    """SQLite implementation of the time-series store.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system. Sort keys are compared with
    SQLite's default BINARY collation, i.e. plain lexical order.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                f"""CREATE TABLE IF NOT EXISTS {_TABLE} (
                    hk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    ticker TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    price_usd REAL NOT NULL,
                    PRIMARY KEY (hk, sk)
                ) WITHOUT ROWID""",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._max_page_size = config.max_page_size
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StoreUnavailableError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    def _connection(self, operation: str) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreUnavailableError(
                "Store is not initialized",
                context={"operation": operation, "table": _TABLE},
            )
        return self._db

    # --- Observation Operations ---

    async def append(
        self, ticker: str, timestamp: str, price_usd: float
    ) -> ObservationRef:
        """Write one observation under ``(ticker, "price_" + timestamp)``.

        A second write with the same ticker and timestamp replaces the
        first (last write wins).
        """
        validate_ticker(ticker)
        validate_timestamp(timestamp)
        db = self._connection("append")
        sk = sort_key(timestamp)
        try:
            await db.execute(
                f"""INSERT OR REPLACE INTO {_TABLE}
                   (hk, sk, ticker, timestamp, price_usd)
                   VALUES (?, ?, ?, ?, ?)""",
                (ticker, sk, ticker, timestamp, price_usd),
            )
            await db.commit()
        except Exception as e:
            raise StoreUnavailableError(
                f"Failed to append observation: {e}",
                context={"operation": "append", "table": _TABLE, "ticker": ticker},
            ) from e

        logger.info("Stored %s observation for %s at %s", price_usd, ticker, timestamp)
        return ObservationRef(ticker=ticker, sort_key=sk)

    async def query_history(
        self,
        ticker: str,
        limit: int = DEFAULT_PAGE_SIZE,
        next_token: str | None = None,
    ) -> HistoryPage:
        """Return up to ``limit`` observations for ``ticker``, newest first.

        ``limit`` is clamped to the configured ``max_page_size``. Resumes
        strictly after the key encoded in ``next_token``. A token is only
        issued when at least one more observation exists past the page.
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        validate_ticker(ticker)

        upper = _prefix_upper_bound(SORT_KEY_PREFIX)
        if next_token:
            upper = decode_token(next_token, ticker)

        page_size = min(limit, self._max_page_size)
        db = self._connection("query")
        try:
            async with db.execute(
                f"""SELECT ticker, timestamp, price_usd, sk FROM {_TABLE}
                   WHERE hk = ? AND sk >= ? AND sk < ?
                   ORDER BY sk DESC
                   LIMIT ?""",
                (ticker, SORT_KEY_PREFIX, upper, page_size + 1),
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise StoreUnavailableError(
                f"Failed to query history: {e}",
                context={"operation": "query", "table": _TABLE, "ticker": ticker},
            ) from e

        token = None
        if len(rows) > page_size:
            rows = rows[:page_size]
            token = encode_token(ticker, rows[-1]["sk"])

        return HistoryPage(
            items=[self._row_to_observation(row) for row in rows],
            next_token=token,
            limit=limit,
        )

    async def list_tickers(self) -> list[str]:
        """Return every ticker with at least one observation."""
        db = self._connection("query")
        try:
            async with db.execute(
                f"SELECT DISTINCT hk FROM {_TABLE} ORDER BY hk"
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise StoreUnavailableError(
                f"Failed to list tickers: {e}",
                context={"operation": "query", "table": _TABLE},
            ) from e
        return [row[0] for row in rows]

    async def count_observations(self, ticker: str | None = None) -> int:
        db = self._connection("query")
        query = f"SELECT COUNT(*) FROM {_TABLE}"
        params: tuple = ()
        if ticker is not None:
            query += " WHERE hk = ?"
            params = (ticker,)
        try:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            raise StoreUnavailableError(
                f"Failed to count observations: {e}",
                context={"operation": "query", "table": _TABLE},
            ) from e
        return row[0]

    @staticmethod
    def _row_to_observation(row: aiosqlite.Row) -> PriceObservation:
        return PriceObservation(
            ticker=row["ticker"],
            timestamp=row["timestamp"],
            price_usd=row["price_usd"],
        )


async def create_store(config: StorageConfig) -> SqliteTimeSeriesStore:
    """Create and initialize a storage backend based on configuration."""
    if config.backend == StorageBackendEnum.SQLITE:
        store = SqliteTimeSeriesStore(config)
        await store.initialize()
        return store
    raise StoreUnavailableError(
        f"Unsupported storage backend: {config.backend}",
        context={"operation": "create_store", "backend": str(config.backend)},
    )
