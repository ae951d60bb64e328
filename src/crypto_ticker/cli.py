"""Click-based CLI for crypto-ticker.

Thin wrapper around library modules. Zero business logic — every operation
delegates to the query router or the store.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys

import click
from rich.console import Console
from rich.table import Table

from crypto_ticker.core.exceptions import CryptoTickerError

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    try:
        return asyncio.run(coro)
    except CryptoTickerError as e:
        console.print(f"[red]{e.kind}: {e}[/red]")
        raise SystemExit(1) from e


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from crypto_ticker.core import load_config

        config = load_config(config_path=ctx.obj.get("config_path"))
        _configure_logging("DEBUG" if ctx.obj.get("verbose") else config.logging.level)
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _create_store_async(config):
    """Create and initialize storage from config."""
    from crypto_ticker.storage import create_store

    return await create_store(config.storage)


def _create_feed(config):
    from crypto_ticker.feed import CoinGeckoClient

    return CoinGeckoClient(config.feed)


def _create_router(store, feed=None):
    """Router over ``store``; without a feed it serves history only."""
    from crypto_ticker.pipeline import PriceResolver, QueryRouter

    resolver = PriceResolver(feed, store) if feed is not None else None
    return QueryRouter(resolver, store)


def _validate_ticker(ctx, param, value: str) -> str:
    from crypto_ticker.core.models import validate_ticker

    try:
        return validate_ticker(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _history_table(ticker: str, page) -> Table:
    table = Table(title=f"Price history: {ticker}")
    table.add_column("Timestamp (UTC)")
    table.add_column("Price (USD)", justify="right")
    for obs in page.items:
        table.add_row(obs.timestamp, f"{obs.price_usd:,.8g}")
    return table


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="CRYPTO_TICKER_CONFIG",
    default=None,
    help="Path to crypto-ticker.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="crypto-ticker")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Crypto Ticker: live and historical crypto prices."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console


# ---------------------------------------------------------------------------
# price
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("ticker", callback=_validate_ticker)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON.")
@click.pass_context
def price(ctx: click.Context, ticker: str, as_json: bool) -> None:
    """Fetch the live price of TICKER and record it."""
    async def _run():
        config = _load_config(ctx)
        store = await _create_store_async(config)
        feed = _create_feed(config)
        try:
            return await _create_router(store, feed).ticker(ticker)
        finally:
            await feed.close()
            await store.close()

    result = _run_async(_run())

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
        return
    click.echo(f"{result.ticker}: ${result.latest_price.usd:,.8g}")


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("ticker", callback=_validate_ticker)
@click.option(
    "--limit", "-n", type=click.IntRange(min=1), default=25, help="Page size."
)
@click.option(
    "--next-token", type=str, default=None, help="Continuation token from a previous page."
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON.")
@click.pass_context
def history(
    ctx: click.Context, ticker: str, limit: int, next_token: str | None, as_json: bool
) -> None:
    """Show recorded prices for TICKER, newest first."""
    async def _run():
        config = _load_config(ctx)
        store = await _create_store_async(config)
        try:
            router = _create_router(store)
            return await router.price_history(ticker, limit=limit, next_token=next_token)
        finally:
            await store.close()

    page = _run_async(_run())

    if as_json:
        click.echo(
            json.dumps(
                page.model_dump(mode="json", by_alias=True, exclude_none=True),
                indent=2,
            )
        )
        return

    if not page.items:
        console.print(f"[yellow]No observations recorded for {ticker}.[/yellow]")
        return

    console.print(_history_table(ticker, page))
    if page.next_token:
        console.print(f"More: --next-token {page.next_token}")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address (default from config).")
@click.option("--port", "-p", type=int, default=None, help="Port number (default from config).")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port
    # The app factory loads its own config; point it at the same file
    if ctx.obj.get("config_path"):
        os.environ["CRYPTO_TICKER_CONFIG"] = ctx.obj["config_path"]

    console.print(f"Starting crypto-ticker API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "crypto_ticker.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show storage status and tracked tickers."""
    async def _run():
        config = _load_config(ctx)
        store = await _create_store_async(config)
        try:
            tickers = await store.list_tickers()
            counts = {t: await store.count_observations(t) for t in tickers}

            table = Table(title="Crypto Ticker Status")
            table.add_column("Metric", style="bold")
            table.add_column("Value", justify="right")

            table.add_row("Storage backend", config.storage.backend.value)
            table.add_row("Database path", config.storage.sqlite_path)
            table.add_row("Price feed", config.feed.base_url)
            table.add_section()
            table.add_row("Tracked tickers", str(len(tickers)))
            table.add_row("Total observations", str(sum(counts.values())))
            if counts:
                table.add_section()
                for ticker, count in counts.items():
                    table.add_row(f"  {ticker}", str(count))

            console.print(table)
        finally:
            await store.close()

    _run_async(_run())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
