"""Shared pytest fixtures for stock-aid tests."""

from datetime import UTC, datetime

import pytest
from datasette.app import Datasette

from datasette_stock_aid.migrations import run_migrations
from stock_aid.geo import Coordinate, CoordinateTable
from stock_aid.models import StockDatabase, Store, User

# 2024-03-15T12:00:00Z
NOW = 1710504000


@pytest.fixture
def db_path(tmp_path):
    """Create a temporary database with full schema via migrations.

    Same migration path as production.
    """
    db_file = tmp_path / "test_stock_aid.db"
    run_migrations(db_file, verbose=False)
    return db_file


@pytest.fixture
def db(db_path):
    return StockDatabase(db_path)


@pytest.fixture
def coordinates():
    """A small postal code table around Mountain View, CA."""
    return CoordinateTable(
        {
            "94043": Coordinate(37.4056, -122.0775),
            "94301": Coordinate(37.4444, -122.1496),
            "10001": Coordinate(40.7484, -73.9967),
        }
    )


def make_user(user_id: str = "user-1", zip_code: str = "94043") -> User:
    return User(
        user_id=user_id,
        first_name="Test",
        last_name="Shopper",
        zip_code=zip_code,
        created_ts=datetime.now(UTC).isoformat(),
    )


def make_store(
    store_id: str = "store-1",
    lat: float = 37.3995,
    lng: float = -122.0814,
    name: str = "Safeway",
    address: str = "570 N Shoreline Blvd, Mountain View, CA 94043",
) -> Store:
    return Store(store_id=store_id, name=name, address=address, lat=lat, lng=lng)


@pytest.fixture
def user(db):
    u = make_user()
    db.create_user(u)
    return u


@pytest.fixture
def store(db):
    s = make_store()
    db.create_store(s)
    return s


@pytest.fixture
def plugin_config(db_path):
    return {
        "db_path": str(db_path),
        "places": {"api_key": "test_key"},
    }


@pytest.fixture
def datasette(db_path, plugin_config):
    """Datasette instance with the plugin configured.

    Uses config= (not metadata=) for Datasette v1 compatibility.
    """
    return Datasette(
        [str(db_path)],
        config={"plugins": {"datasette-stock-aid": plugin_config}},
    )
