"""Tests for proximity ranking."""

from conftest import make_store
from stock_aid.geo import Coordinate, distance
from stock_aid.models import Item, Observer, StockReport
from stock_aid.ranking import ItemObservation, observations_from_item, rank_items, rank_stores

ORIGIN = Coordinate(37.4056, -122.0775)


def _obs(store_id, lat, lng, seconds_ago=0, item_name="flour"):
    return ItemObservation(
        item_name=item_name,
        store_id=store_id,
        store_name=f"Store {store_id}",
        store_address="1 Main St, Town, CA 94043",
        store_lat=lat,
        store_lng=lng,
        in_stock=True,
        seen_count=1,
        seconds_ago=seconds_ago,
    )


class TestItemObservation:
    """Test ItemObservation."""

    def test_elapsed_time_floors(self):
        obs = _obs("s1", 0, 0, seconds_ago=2 * 86400 + 5 * 3600 + 59)
        assert obs.days_ago == 2
        assert obs.hours_ago == 53

    def test_to_dict_keys(self):
        result = _obs("s1", 37.4, -122.1, seconds_ago=7200).to_dict()
        assert result == {
            "itemName": "flour",
            "daysAgo": 0,
            "hoursAgo": 2,
            "storeName": "Store s1",
            "storeAddress": "1 Main St, Town, CA 94043",
            "storeLat": 37.4,
            "storeLong": -122.1,
            "inStock": True,
            "seenCount": 1,
        }

    def test_observations_from_item(self):
        store = make_store()
        item = Item(
            name="eggs",
            stock_reports=[
                StockReport(
                    store=store,
                    in_stock=False,
                    timestamp_sec=1000,
                    observers=[Observer("u1", 1000), Observer("u2", 1100)],
                    seen_count=2,
                )
            ],
        )
        [obs] = observations_from_item(item, now=4600)

        assert obs.item_name == "eggs"
        assert obs.store_id == store.store_id
        assert obs.in_stock is False
        assert obs.seen_count == 2
        assert obs.seconds_ago == 3600


class TestRankItems:
    """Test rank_items."""

    def test_closest_first(self):
        near = _obs("near", 37.41, -122.08)
        mid = _obs("mid", 37.50, -122.20)
        far = _obs("far", 40.75, -74.00)

        ranked = rank_items([far, near, mid], ORIGIN)

        assert [o.store_id for o in ranked] == ["near", "mid", "far"]
        distances = [distance(o.store_lat, o.store_lng, ORIGIN.lat, ORIGIN.lng) for o in ranked]
        assert distances == sorted(distances)

    def test_equal_distance_most_recent_first(self):
        old = _obs("s1", 37.5, -122.2, seconds_ago=5000, item_name="flour")
        new = _obs("s1", 37.5, -122.2, seconds_ago=10, item_name="eggs")

        ranked = rank_items([old, new], ORIGIN)

        assert [o.item_name for o in ranked] == ["eggs", "flour"]

    def test_empty(self):
        assert rank_items([], ORIGIN) == []


class TestRankStores:
    """Test rank_stores."""

    def test_closest_first_with_limit(self):
        stores = [
            make_store("far", lat=40.75, lng=-74.0),
            make_store("near", lat=37.41, lng=-122.08),
            make_store("mid", lat=37.5, lng=-122.2),
        ]
        assert [s.store_id for s in rank_stores(stores, ORIGIN)] == ["near", "mid", "far"]
        assert [s.store_id for s in rank_stores(stores, ORIGIN, limit=2)] == ["near", "mid"]

    def test_limit_larger_than_store_count(self):
        stores = [make_store("only")]
        assert rank_stores(stores, ORIGIN, limit=10) == stores

    def test_equal_distance_ordered_by_id(self):
        stores = [make_store("b", lat=37.5, lng=-122.2), make_store("a", lat=37.5, lng=-122.2)]
        assert [s.store_id for s in rank_stores(stores, ORIGIN)] == ["a", "b"]
