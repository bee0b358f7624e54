#!/usr/bin/env python3
"""CIK Stock API CLI: run the server and manage stocks."""

import argparse
import signal
import sys

import questionary
from rich.console import Console
from rich.table import Table

from cikapi.config import Config
from cikapi.db import DataStore
from cikapi.errors import StorageUnavailable, StoreError
from cikapi.log import configure_logging, get_logger
from cikapi.stock import StockRepository, StockService

console = Console()
logger = get_logger(__name__)


def open_store(config: Config) -> DataStore:
    """Initialize storage or halt the process."""
    store = DataStore(config)
    try:
        store.initialize()
    except StorageUnavailable as e:
        logger.error("Failed to connect to database: %s", e)
        sys.exit(1)
    return store


def serve(config: Config) -> None:
    """Run the HTTP API until SIGINT/SIGTERM."""
    from cikapi.app import create_app

    store = open_store(config)
    logger.info("Database connection established")
    app = create_app(store, config)

    def graceful_shutdown(signum, frame):
        logger.info("Received %s. Starting graceful shutdown...", signal.Signals(signum).name)
        try:
            store.close()
        except Exception:
            logger.exception("Error during shutdown")
            sys.exit(1)
        sys.exit(0)

    signal.signal(signal.SIGTERM, graceful_shutdown)
    signal.signal(signal.SIGINT, graceful_shutdown)

    logger.info("Server listening on %s:%d", config.listen_host, config.listen_port)
    if not config.is_production:
        logger.info("Explorer: http://%s:%d/api/explorer", config.listen_host, config.listen_port)
    app.run(host=config.listen_host, port=config.listen_port, threaded=True)


def init_db(config: Config) -> None:
    """Create the stocks table and seed it when empty."""
    store = open_store(config)
    store.close()
    console.print("[green]Database schema is ready.[/]")


def list_stocks(config: Config, limit: int) -> None:
    """Print stocks as a table."""
    store = open_store(config)
    try:
        stocks = StockService(StockRepository(store)).stocks(limit=limit)
    finally:
        store.close()

    if not stocks:
        console.print("[red]No stocks found.[/]")
        return

    table = Table(title="Stocks")
    for column in ("ID", "Symbol", "Name", "Price", "CIK", "Updated"):
        table.add_column(column)
    for s in stocks:
        table.add_row(
            str(s.id),
            s.symbol or "",
            s.name,
            f"{s.price:.2f}" if s.price is not None else "",
            str(s.cik) if s.cik is not None else "",
            s.updated_at.isoformat(timespec="seconds") if s.updated_at else "",
        )
    console.print(table)


def upsert_stock(config: Config) -> None:
    """Prompt for a stock and create or update it."""
    key = questionary.select("Identify the stock by:", choices=["symbol", "cik"]).ask()
    if key is None:
        console.print("[dim]Cancelled.[/]")
        return

    value = questionary.text(
        "Symbol:" if key == "symbol" else "CIK:",
        validate=lambda v: bool(v.strip()) and (key == "symbol" or v.strip().isdigit()),
    ).ask()
    name = questionary.text("Name:", validate=lambda v: bool(v.strip())).ask()
    raw_price = questionary.text("Price (blank for none):").ask()
    if value is None or name is None or raw_price is None:
        console.print("[dim]Cancelled.[/]")
        return

    try:
        price = float(raw_price) if raw_price.strip() else None
    except ValueError:
        console.print(f"[red]Invalid price: {raw_price}[/]")
        return

    console.print(f"[yellow]Will upsert [bold]{name}[/] by {key}={value.strip()} (price={price}).[/]")
    if not questionary.confirm("Proceed with these changes?").ask():
        console.print("[dim]Cancelled.[/]")
        return

    store = open_store(config)
    service = StockService(StockRepository(store))
    try:
        if key == "symbol":
            stock = service.upsert_stock(symbol=value.strip(), name=name.strip(), price=price)
        else:
            stock = service.upsert_stock_by_cik(cik=int(value), name=name.strip(), price=price)
    except StoreError as e:
        console.print(f"[red]{e}[/]")
        return
    finally:
        store.close()

    console.print(f"[green]Saved stock #{stock.id}:[/] {stock}")


def main():
    parser = argparse.ArgumentParser(description="CIK Stock API")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the HTTP API")
    subparsers.add_parser("init-db", help="Create and seed the stocks table")
    list_parser = subparsers.add_parser("list", help="List stocks")
    list_parser.add_argument("--limit", type=int, default=100)
    subparsers.add_parser("upsert", help="Create or update a stock interactively")

    args = parser.parse_args()

    config = Config.from_env()
    configure_logging(config.log_level, config.environment)

    if args.command == "serve":
        serve(config)
    elif args.command == "init-db":
        init_db(config)
    elif args.command == "list":
        list_stocks(config, args.limit)
    elif args.command == "upsert":
        upsert_stock(config)


if __name__ == "__main__":
    main()
