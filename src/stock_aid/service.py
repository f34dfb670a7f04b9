"""
Operations exposed to the HTTP routes and the CLI.

Each operation validates its input and checks that the acting user (and
store, where relevant) exists before touching item records. Validation
and existence failures are raised; per-item storage failures during an
upload are tallied in the returned BatchResult.
"""

import logging
import re
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .aggregation import BatchResult, apply_reports
from .catalog import ItemTokens, ItemTokenTable
from .exceptions import UnknownStoreError, UnknownUserError, ValidationError
from .geo import CoordinateTable
from .models import StockDatabase, Store, User
from .places import PlacesClient
from .ranking import ItemObservation, observations_from_item, rank_items, rank_stores

logger = logging.getLogger(__name__)

VALID_ADDRESS = re.compile(r"^.+, .+, [A-Za-z]{2,} [0-9]{5,}$")


def normalize_item_name(name: str) -> str:
    """Item names are keyed lower-cased and trimmed."""
    return name.strip().lower()


def _text(value: Any, label: str) -> str:
    """A stripped string field; None reads as empty."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a string")
    return value.strip()


def _require_user(db: StockDatabase, user_id: str) -> User:
    user = db.get_user(user_id)
    if user is None:
        raise UnknownUserError(user_id)
    return user


# -----------------------------------------------------------------------------
# Upload
# -----------------------------------------------------------------------------


@dataclass
class UploadRequest:
    """A cleaned report upload: deduplicated, normalized item names."""

    user_id: str
    store_id: str
    in_stock: list[str]
    out_of_stock: list[str]


def clean_upload_request(
    user_id: str | None,
    store_id: str | None,
    in_stock: list[str] | None,
    out_of_stock: list[str] | None,
) -> UploadRequest:
    """
    Validate and normalize an upload.

    Names are trimmed and lower-cased, duplicates within a list are
    dropped, and a name listed as both in stock and out of stock is kept
    only as in stock.
    """
    user_id = _text(user_id, "user id")
    store_id = _text(store_id, "store id")
    in_stock = in_stock or []
    out_of_stock = out_of_stock or []

    if not isinstance(in_stock, list) or not isinstance(out_of_stock, list):
        raise ValidationError("in-stock and out-of-stock items must be lists")
    if not user_id:
        raise ValidationError("missing user id")
    if not store_id:
        raise ValidationError("missing store id")
    if not in_stock and not out_of_stock:
        raise ValidationError("in-stock and out-of-stock items are both empty")

    seen: set[str] = set()

    def _clean(names: list[str], label: str) -> list[str]:
        cleaned = []
        for i, raw in enumerate(names):
            if not isinstance(raw, str):
                raise ValidationError(f"{label} item at index {i} is not a string")
            name = normalize_item_name(raw)
            if not name:
                raise ValidationError(f"{label} item at index {i} is empty")
            if name in seen:
                continue
            seen.add(name)
            cleaned.append(name)
        return cleaned

    return UploadRequest(
        user_id=user_id,
        store_id=store_id,
        in_stock=_clean(in_stock, "in-stock"),
        out_of_stock=_clean(out_of_stock, "out-of-stock"),
    )


def upload_report(
    db: StockDatabase,
    user_id: str | None,
    store_id: str | None,
    in_stock: list[str] | None,
    out_of_stock: list[str] | None,
    now: int | None = None,
) -> BatchResult:
    """
    Record that a user saw items in stock / out of stock at a store.

    Raises ValidationError, UnknownUserError or UnknownStoreError before
    any item is written. Otherwise returns the combined BatchResult of the
    in-stock and out-of-stock batches.
    """
    req = clean_upload_request(user_id, store_id, in_stock, out_of_stock)

    user = _require_user(db, req.user_id)
    store = db.get_store(req.store_id)
    if store is None:
        raise UnknownStoreError(req.store_id)

    if now is None:
        now = int(time.time())

    result = apply_reports(db, store, user, now, True, req.in_stock)
    result = result.combine(apply_reports(db, store, user, now, False, req.out_of_stock))

    if not result.ok:
        logger.warning(f"Upload from user {user.user_id} partially failed: {result.message}")
    return result


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def query_items(
    db: StockDatabase,
    coordinates: CoordinateTable,
    user_id: str | None,
    item_name: str | None = None,
    now: int | None = None,
) -> list[ItemObservation]:
    """
    Every stock report for one item (or all items), closest store first.

    The origin is the requesting user's postal code.
    """
    user_id = _text(user_id, "user id")
    if not user_id:
        raise ValidationError("missing user id")
    if item_name is not None:
        item_name = normalize_item_name(_text(item_name, "item name"))
        if not item_name:
            raise ValidationError("missing item name")

    user = _require_user(db, user_id)

    if now is None:
        now = int(time.time())

    observations: list[ItemObservation] = []
    for item in db.list_items(item_name):
        observations.extend(observations_from_item(item, now))

    return rank_items(observations, coordinates.resolve(user.zip_code))


def query_item_tokens(db: StockDatabase, tokens: ItemTokenTable, user_id: str | None) -> list[ItemTokens]:
    """The static item token table, in file order."""
    user_id = _text(user_id, "user id")
    if not user_id:
        raise ValidationError("missing user id")
    _require_user(db, user_id)
    return list(tokens)


@dataclass
class StoreAddress:
    """A store address split into its parts."""

    street: str
    city: str
    state: str
    zip_code: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
        }


def parse_address(address: str) -> StoreAddress | None:
    """Split ``<street>, <city>, <state> <zip code>``. None if it doesn't match."""
    if not VALID_ADDRESS.match(address):
        return None
    components = address.split(", ")
    state, _, zip_code = components[2].partition(" ")
    return StoreAddress(
        street=components[0].strip(),
        city=components[1].strip(),
        state=state.strip(),
        zip_code=zip_code.strip(),
    )


@dataclass
class StoreListing:
    """A store in a store query, with its parsed address when available."""

    store: Store
    address: StoreAddress | None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "store_id": self.store.store_id,
            "name": self.store.name,
            "address": self.store.address,
            "latitude": self.store.lat,
            "longitude": self.store.lng,
        }
        if self.address:
            result.update(self.address.to_dict())
        return result


def query_stores(
    db: StockDatabase,
    coordinates: CoordinateTable,
    user_id: str | None,
    limit: int,
) -> list[StoreListing]:
    """The ``limit`` stores closest to the user's postal code."""
    user_id = _text(user_id, "user id")
    if not user_id:
        raise ValidationError("missing user id")
    user = _require_user(db, user_id)

    stores = rank_stores(db.list_stores(), coordinates.resolve(user.zip_code), limit)

    listings = []
    for store in stores:
        address = parse_address(store.address)
        if address is None:
            logger.warning(
                f"Store {store.store_id} address {store.address!r} does not follow "
                "`<street>, <city>, <state> <zip code>`"
            )
        listings.append(StoreListing(store=store, address=address))
    return listings


# -----------------------------------------------------------------------------
# Stores and users
# -----------------------------------------------------------------------------


async def add_store(
    db: StockDatabase,
    places: PlacesClient,
    user_id: str | None,
    name: str | None,
    address: str | None,
) -> Store:
    """Vet a store with Places and save the canonical version."""
    user_id = _text(user_id, "user id")
    name = _text(name, "store name")
    address = _text(address, "store address text")

    if not user_id:
        raise ValidationError("missing user id")
    if not name:
        raise ValidationError("missing store name")
    if not address:
        raise ValidationError("missing store address text")

    _require_user(db, user_id)

    # TODO: Reject stores whose place id is already registered.
    place = await places.vet_store(name, address)

    store = Store(
        store_id=secrets.token_hex(16),
        name=place.name,
        address=place.address,
        lat=place.lat,
        lng=place.lng,
        created_ts=datetime.now(UTC).isoformat(),
    )
    db.create_store(store)
    logger.info(f"Added store {store.store_id}: {store.name} ({store.address})")
    return store


def setup_user(
    db: StockDatabase,
    first_name: str | None,
    last_name: str | None,
    zip_code: str | None,
) -> User:
    """Register a new user."""
    first_name = _text(first_name, "first name")
    last_name = _text(last_name, "last name")
    zip_code = _text(zip_code, "zip code")

    if not first_name:
        raise ValidationError("missing first name")
    if not last_name:
        raise ValidationError("missing last name")
    if not zip_code:
        raise ValidationError("missing zip code")

    user = User(
        user_id=secrets.token_hex(16),
        first_name=first_name,
        last_name=last_name,
        zip_code=zip_code,
        created_ts=datetime.now(UTC).isoformat(),
    )
    db.create_user(user)
    logger.info(f"Set up user {user.user_id}")
    return user
