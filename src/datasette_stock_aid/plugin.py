"""
Datasette plugin exposing the stock-aid JSON API.

All routes take a JSON body by POST and answer with JSON:

- /stock-aid/user/setup          register a user
- /stock-aid/item/query          stock reports for an item, nearest first
- /stock-aid/item/tokens/query   static item name / token table
- /stock-aid/store/query         nearest stores
- /stock-aid/store/add           vet and add a store
- /stock-aid/report/upload       report items in / out of stock at a store
"""

import asyncio
import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from datasette import Response, hookimpl
from datasette.utils.asgi import Request

from stock_aid import service
from stock_aid.catalog import ItemTokenTable
from stock_aid.config import PLUGIN_NAME, StockAidConfig
from stock_aid.exceptions import (
    NotFoundError,
    PlacesError,
    StockAidError,
    StoreVettingError,
    UnknownUserError,
    ValidationError,
)
from stock_aid.geo import CoordinateTable
from stock_aid.models import StockDatabase
from stock_aid.places import PlacesClient

# -----------------------------------------------------------------------------
# Plugin Configuration
# -----------------------------------------------------------------------------


def get_plugin_config(datasette) -> StockAidConfig:
    """Get plugin configuration from datasette.yaml."""
    return StockAidConfig.from_dict(datasette.plugin_config(PLUGIN_NAME) or {})


# Reference tables are read once per file and shared read-only.
@lru_cache(maxsize=None)
def load_coordinates(path: Path) -> CoordinateTable:
    return CoordinateTable.load(path)


@lru_cache(maxsize=None)
def load_item_tokens(path: Path) -> ItemTokenTable:
    return ItemTokenTable.load(path)


# -----------------------------------------------------------------------------
# Database Helpers
# -----------------------------------------------------------------------------


def ensure_db_exists(db_path: Path) -> None:
    """Create or update the schema. Idempotent."""
    from datasette_stock_aid.migrations import run_migrations

    run_migrations(db_path, verbose=False)


def get_db(config: StockAidConfig) -> StockDatabase:
    ensure_db_exists(config.db_path)
    return StockDatabase(config.db_path, config.transaction)


# -----------------------------------------------------------------------------
# Request / Response Helpers
# -----------------------------------------------------------------------------


async def read_json(request: Request) -> dict[str, Any]:
    """Decode the JSON request body into a dict."""
    body = await request.post_body()
    try:
        data = json.loads(body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"failed to decode request body in json: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def error_response(error: StockAidError) -> Response:
    """Map a stock-aid error to an HTTP status."""
    if isinstance(error, (ValidationError, StoreVettingError)):
        status = 400
    elif isinstance(error, UnknownUserError):
        status = 403
    elif isinstance(error, NotFoundError):
        status = 404
    elif isinstance(error, PlacesError):
        status = 502
    else:
        status = 500
    return Response.json({"ok": False, "error": str(error)}, status=status)


def method_not_allowed() -> Response:
    return Response.json({"ok": False, "error": "Method not allowed"}, status=405)


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


async def user_setup(request: Request, datasette) -> Response:
    """Register a user and return their id."""
    if request.method != "POST":
        return method_not_allowed()

    config = get_plugin_config(datasette)
    try:
        data = await read_json(request)
        user = service.setup_user(
            get_db(config),
            data.get("first_name"),
            data.get("last_name"),
            data.get("zip_code"),
        )
    except StockAidError as e:
        return error_response(e)

    return Response.json({"user_id": user.user_id})


async def item_query(request: Request, datasette) -> Response:
    """Stock reports for an item (or every item), closest store first."""
    if request.method != "POST":
        return method_not_allowed()

    config = get_plugin_config(datasette)
    try:
        data = await read_json(request)
        observations = service.query_items(
            get_db(config),
            load_coordinates(config.zip_codes_path),
            data.get("user_id"),
            data.get("item_name"),
        )
    except StockAidError as e:
        return error_response(e)

    return Response.json([o.to_dict() for o in observations])


async def item_tokens_query(request: Request, datasette) -> Response:
    """The item name / token table used by clients to recognize items."""
    if request.method != "POST":
        return method_not_allowed()

    config = get_plugin_config(datasette)
    try:
        data = await read_json(request)
        entries = service.query_item_tokens(
            get_db(config),
            load_item_tokens(config.item_tokens_path),
            data.get("user_id"),
        )
    except StockAidError as e:
        return error_response(e)

    return Response.json([entry.to_dict() for entry in entries])


async def store_query(request: Request, datasette) -> Response:
    """The stores nearest to the user."""
    if request.method != "POST":
        return method_not_allowed()

    config = get_plugin_config(datasette)
    try:
        data = await read_json(request)
        listings = service.query_stores(
            get_db(config),
            load_coordinates(config.zip_codes_path),
            data.get("user_id"),
            config.query_stores_limit,
        )
    except StockAidError as e:
        return error_response(e)

    return Response.json({"stores": [s.to_dict() for s in listings]})


async def store_add(request: Request, datasette) -> Response:
    """Vet a store with Google Places and save it."""
    if request.method != "POST":
        return method_not_allowed()

    config = get_plugin_config(datasette)
    places = PlacesClient(
        api_key=config.places.get_api_key(),
        base_url=config.places.api_base,
        timeout_seconds=config.places.timeout_seconds,
    )
    try:
        data = await read_json(request)
        store = await service.add_store(
            get_db(config),
            places,
            data.get("user_id"),
            data.get("name"),
            data.get("address"),
        )
    except StockAidError as e:
        return error_response(e)

    return Response.json({"store_id": store.store_id})


async def report_upload(request: Request, datasette) -> Response:
    """Record items seen in stock / out of stock at a store."""
    if request.method != "POST":
        return method_not_allowed()

    config = get_plugin_config(datasette)
    try:
        data = await read_json(request)
        # Lock retries sleep, so keep them off the event loop.
        result = await asyncio.to_thread(
            service.upload_report,
            get_db(config),
            data.get("user_id"),
            data.get("store_id"),
            data.get("in_stock_items"),
            data.get("out_stock_items"),
        )
    except StockAidError as e:
        return error_response(e)

    if not result.ok:
        return Response.json(
            {"ok": False, "error": result.message, **result.to_dict()},
            status=500,
        )
    return Response.json(result.to_dict())


# -----------------------------------------------------------------------------
# Datasette Hooks
# -----------------------------------------------------------------------------


@hookimpl
def register_routes():
    """Register plugin routes with Datasette."""
    return [
        (r"^/stock-aid/user/setup$", user_setup),
        (r"^/stock-aid/item/query$", item_query),
        (r"^/stock-aid/item/tokens/query$", item_tokens_query),
        (r"^/stock-aid/store/query$", store_query),
        (r"^/stock-aid/store/add$", store_add),
        (r"^/stock-aid/report/upload$", report_upload),
    ]


@hookimpl
def skip_csrf(datasette, scope):
    """JSON API routes are called by app clients, not forms."""
    if scope.get("path", "").startswith("/stock-aid/"):
        return True
    return None


@hookimpl
def startup(datasette):
    """
    Run on Datasette startup.

    Creates the schema and loads the reference tables, so a missing data
    file stops the server instead of failing the first query.
    """
    config = get_plugin_config(datasette)
    ensure_db_exists(config.db_path)
    load_coordinates(config.zip_codes_path)
    load_item_tokens(config.item_tokens_path)
