"""
Data models and database operations for stock-aid.
"""

import json
import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .config import TransactionConfig
from .exceptions import TransactionConflictError

logger = logging.getLogger(__name__)


@dataclass
class User:
    """A registered shopper. Only the postal code matters for ranking."""

    user_id: str
    first_name: str
    last_name: str
    zip_code: str
    created_ts: str | None = None


@dataclass
class Store:
    """A vetted store. Coordinates are fixed when the store is created."""

    store_id: str
    name: str
    address: str
    lat: float
    lng: float
    created_ts: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "store_id": self.store_id,
            "name": self.name,
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Store":
        return cls(
            store_id=data["store_id"],
            name=data["name"],
            address=data["address"],
            lat=data["lat"],
            lng=data["lng"],
        )


@dataclass
class Observer:
    """A user who corroborated a stock report, with the time they first did."""

    user_id: str
    timestamp_sec: int

    def to_dict(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "timestamp_sec": self.timestamp_sec}


@dataclass
class StockReport:
    """
    Availability of one item at one store for one in-stock/out-of-stock flag.

    Never stored on its own; it lives in its Item's report list.
    """

    store: Store
    in_stock: bool
    timestamp_sec: int
    observers: list[Observer] = field(default_factory=list)
    seen_count: int = 0

    def has_observer(self, user_id: str) -> bool:
        return any(o.user_id == user_id for o in self.observers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "store": self.store.to_dict(),
            "in_stock": self.in_stock,
            "timestamp_sec": self.timestamp_sec,
            "observers": [o.to_dict() for o in self.observers],
            "seen_count": self.seen_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockReport":
        return cls(
            store=Store.from_dict(data["store"]),
            in_stock=bool(data["in_stock"]),
            timestamp_sec=int(data["timestamp_sec"]),
            observers=[
                Observer(user_id=o["user_id"], timestamp_sec=int(o["timestamp_sec"]))
                for o in data.get("observers", [])
            ],
            seen_count=int(data.get("seen_count", 0)),
        )


@dataclass
class Item:
    """A named product and every stock report filed against it."""

    name: str
    stock_reports: list[StockReport] = field(default_factory=list)
    updated_ts: str | None = None

    def reports_json(self) -> str:
        return json.dumps([r.to_dict() for r in self.stock_reports])

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Item":
        return cls(
            name=row["name"],
            stock_reports=[StockReport.from_dict(r) for r in json.loads(row["stock_reports_json"])],
            updated_ts=row["updated_ts"],
        )


def _is_busy(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


class StockDatabase:
    """Database operations for stock-aid."""

    def __init__(self, db_path: Path, transaction: TransactionConfig | None = None):
        self.db_path = db_path
        self.transaction = transaction or TransactionConfig()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.transaction.busy_timeout_seconds)
        conn.row_factory = sqlite3.Row
        return conn

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def create_user(self, user: User) -> None:
        """Insert a new user."""
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO users (user_id, first_name, last_name, zip_code, created_ts)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user.user_id, user.first_name, user.last_name, user.zip_code, user.created_ts),
            )
            conn.commit()
        finally:
            conn.close()

    def get_user(self, user_id: str) -> User | None:
        """Get a user by ID. None means the user does not exist."""
        conn = self._connect()
        try:
            cursor = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
            return User(**dict(row)) if row else None
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Stores
    # -------------------------------------------------------------------------

    def create_store(self, store: Store) -> None:
        """Insert a new, already vetted store."""
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO stores (store_id, name, address, lat, lng, created_ts)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (store.store_id, store.name, store.address, store.lat, store.lng, store.created_ts),
            )
            conn.commit()
        finally:
            conn.close()

    def get_store(self, store_id: str) -> Store | None:
        """Get a store by ID. None means the store does not exist."""
        conn = self._connect()
        try:
            cursor = conn.execute("SELECT * FROM stores WHERE store_id = ?", (store_id,))
            row = cursor.fetchone()
            return Store(**dict(row)) if row else None
        finally:
            conn.close()

    def list_stores(self) -> list[Store]:
        """Get every store."""
        conn = self._connect()
        try:
            cursor = conn.execute("SELECT * FROM stores")
            return [Store(**dict(row)) for row in cursor.fetchall()]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def get_item(self, name: str) -> Item | None:
        """Get an item by its normalized name."""
        conn = self._connect()
        try:
            cursor = conn.execute("SELECT * FROM items WHERE name = ?", (name,))
            row = cursor.fetchone()
            return Item.from_row(row) if row else None
        finally:
            conn.close()

    def list_items(self, name: str | None = None) -> list[Item]:
        """Get all items, or only the one matching ``name``."""
        conn = self._connect()
        try:
            if name is None:
                cursor = conn.execute("SELECT * FROM items ORDER BY name")
            else:
                cursor = conn.execute("SELECT * FROM items WHERE name = ?", (name,))
            return [Item.from_row(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def run_in_transaction(self, name: str, mutate: Callable[[Item | None], Item]) -> Item:
        """
        Atomically fetch, mutate and store the item keyed by ``name``.

        BEGIN IMMEDIATE takes the database write lock before the read, so
        concurrent writers (in this process or another) are serialized and
        never lose each other's updates. A locked database is retried with
        backoff; errors raised by ``mutate`` roll back and propagate.

        Returns the item as stored.
        """
        attempts = self.transaction.max_attempts
        for attempt in range(1, attempts + 1):
            conn = self._connect()
            conn.isolation_level = None  # explicit BEGIN/COMMIT
            try:
                try:
                    conn.execute("BEGIN IMMEDIATE")
                except sqlite3.OperationalError as e:
                    if not _is_busy(e):
                        raise
                    logger.debug(f"Item {name!r} locked (attempt {attempt}/{attempts})")
                    time.sleep(self.transaction.retry_backoff_seconds * attempt)
                    continue

                try:
                    cursor = conn.execute("SELECT * FROM items WHERE name = ?", (name,))
                    row = cursor.fetchone()
                    current = Item.from_row(row) if row else None

                    item = mutate(current)
                    item.updated_ts = datetime.now(UTC).isoformat()

                    conn.execute(
                        """
                        INSERT INTO items (name, stock_reports_json, updated_ts)
                        VALUES (?, ?, ?)
                        ON CONFLICT(name) DO UPDATE SET
                            stock_reports_json = excluded.stock_reports_json,
                            updated_ts = excluded.updated_ts
                        """,
                        (name, item.reports_json(), item.updated_ts),
                    )
                    conn.execute("COMMIT")
                    return item
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
            finally:
                conn.close()

        raise TransactionConflictError(name, attempts)
