"""
Proximity ranking of query results.

Results are ordered by distance from their store to the origin. Equal
distances (exact float equality) fall back to recency for item
observations and to store id for stores, so the order is deterministic.
"""

from dataclasses import dataclass
from typing import Any

from .geo import Coordinate, distance
from .models import Item, Store

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 3600 * 24


@dataclass
class ItemObservation:
    """One stock report of one item, as returned by an item query."""

    item_name: str
    store_id: str
    store_name: str
    store_address: str
    store_lat: float
    store_lng: float
    in_stock: bool
    seen_count: int
    seconds_ago: int

    @property
    def hours_ago(self) -> int:
        return self.seconds_ago // SECONDS_PER_HOUR

    @property
    def days_ago(self) -> int:
        return self.seconds_ago // SECONDS_PER_DAY

    def to_dict(self) -> dict[str, Any]:
        """Wire format used by the item query route."""
        return {
            "itemName": self.item_name,
            "daysAgo": self.days_ago,
            "hoursAgo": self.hours_ago,
            "storeName": self.store_name,
            "storeAddress": self.store_address,
            "storeLat": self.store_lat,
            "storeLong": self.store_lng,
            "inStock": self.in_stock,
            "seenCount": self.seen_count,
        }


def observations_from_item(item: Item, now: int) -> list[ItemObservation]:
    """Flatten an item's reports into observations, in stored order."""
    return [
        ItemObservation(
            item_name=item.name,
            store_id=report.store.store_id,
            store_name=report.store.name,
            store_address=report.store.address,
            store_lat=report.store.lat,
            store_lng=report.store.lng,
            in_stock=report.in_stock,
            seen_count=report.seen_count,
            seconds_ago=now - report.timestamp_sec,
        )
        for report in item.stock_reports
    ]


def rank_items(observations: list[ItemObservation], origin: Coordinate) -> list[ItemObservation]:
    """Sort by distance to ``origin``, most recent first on ties."""
    return sorted(
        observations,
        key=lambda o: (distance(o.store_lat, o.store_lng, origin.lat, origin.lng), o.seconds_ago),
    )


def rank_stores(stores: list[Store], origin: Coordinate, limit: int | None = None) -> list[Store]:
    """Sort by distance to ``origin`` and keep the closest ``limit`` stores."""
    # TODO: use heapq.nsmallest when limit is much smaller than the store count
    ranked = sorted(
        stores,
        key=lambda s: (distance(s.lat, s.lng, origin.lat, origin.lng), s.store_id),
    )
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
