"""
CLI runner for stock-aid.

Usage:
    python -m stock_aid.run [OPTIONS] COMMAND

    # Create or update the database schema
    python -m stock_aid.run init-db

    # Report items seen at a store
    python -m stock_aid.run upload --user USER_ID --store STORE_ID \\
        --in-stock "toilet paper" --out-of-stock flour

    # Nearest reports for an item, as JSON
    python -m stock_aid.run query-items --user USER_ID --item flour

    # Nearest stores
    python -m stock_aid.run query-stores --user USER_ID
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import service
from .config import StockAidConfig
from .exceptions import StockAidError
from .geo import CoordinateTable
from .models import StockDatabase

logger = logging.getLogger("stock-aid")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def cmd_init_db(config: StockAidConfig, args: argparse.Namespace) -> int:
    from datasette_stock_aid.migrations import run_migrations

    logger.info(f"Initializing database: {config.db_path}")
    applied = run_migrations(config.db_path, verbose=args.verbose)
    logger.info(f"Applied {len(applied)} migration(s)")
    return 0


def cmd_upload(config: StockAidConfig, args: argparse.Namespace) -> int:
    db = StockDatabase(config.db_path, config.transaction)
    result = service.upload_report(db, args.user, args.store, args.in_stock, args.out_of_stock)
    if not result.ok:
        logger.error(result.message)
        return 1
    logger.info(f"Recorded {result.attempted} report(s)")
    return 0


def cmd_query_items(config: StockAidConfig, args: argparse.Namespace) -> int:
    db = StockDatabase(config.db_path, config.transaction)
    coordinates = CoordinateTable.load(config.zip_codes_path)
    observations = service.query_items(db, coordinates, args.user, args.item)
    print(json.dumps([o.to_dict() for o in observations], indent=2))
    return 0


def cmd_query_stores(config: StockAidConfig, args: argparse.Namespace) -> int:
    db = StockDatabase(config.db_path, config.transaction)
    coordinates = CoordinateTable.load(config.zip_codes_path)
    limit = args.limit if args.limit is not None else config.query_stores_limit
    listings = service.query_stores(db, coordinates, args.user, limit)
    print(json.dumps({"stores": [s.to_dict() for s in listings]}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="stock-aid: crowd-sourced store stock availability",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("datasette.yaml"),
        help="Path to config file (default: datasette.yaml)",
    )
    parser.add_argument("--db", type=Path, help="Override database path from config")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    sub = parser.add_subparsers(dest="command")

    init_db = sub.add_parser("init-db", help="Create or update the database schema")
    init_db.set_defaults(func=cmd_init_db)

    upload = sub.add_parser("upload", help="Report items seen at a store")
    upload.add_argument("--user", required=True, help="Acting user id")
    upload.add_argument("--store", required=True, help="Store id")
    upload.add_argument("--in-stock", action="append", default=[], help="Item seen in stock")
    upload.add_argument("--out-of-stock", action="append", default=[], help="Item seen out of stock")
    upload.set_defaults(func=cmd_upload)

    items = sub.add_parser("query-items", help="Nearest stock reports")
    items.add_argument("--user", required=True, help="Requesting user id")
    items.add_argument("--item", help="Only this item (default: all items)")
    items.set_defaults(func=cmd_query_items)

    stores = sub.add_parser("query-stores", help="Nearest stores")
    stores.add_argument("--user", required=True, help="Requesting user id")
    stores.add_argument("--limit", type=int, help="Override the configured store limit")
    stores.set_defaults(func=cmd_query_stores)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    config = StockAidConfig.from_yaml(args.config)
    if args.db:
        config.db_path = args.db

    if args.command != "init-db" and not config.db_path.exists():
        logger.error(f"Database not found: {config.db_path}")
        logger.error("Run 'python -m stock_aid.run init-db' first to create the database.")
        return 1

    try:
        return args.func(config, args)
    except StockAidError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
