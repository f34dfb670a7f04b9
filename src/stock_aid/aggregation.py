"""
Aggregation of stock reports into item records.

Every item name in a batch gets its own unit of work. A failing item is
counted and logged, and the batch moves on: partial success is a normal
outcome, reported as a failure count plus the first error seen.
"""

import logging
from dataclasses import dataclass

from .merge import merge_report
from .models import Item, StockDatabase, Store, User

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of applying one batch of reports."""

    attempted: int = 0
    failure_count: int = 0
    first_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure_count == 0

    @property
    def message(self) -> str | None:
        """Human-readable failure summary, None on success."""
        if self.ok:
            return None
        return (
            f"Encountered {self.failure_count} failures, "
            f"recorded the first one: {self.first_error}"
        )

    def record_failure(self, error: str) -> None:
        self.failure_count += 1
        if self.first_error is None:
            self.first_error = error

    def combine(self, other: "BatchResult") -> "BatchResult":
        """Merge two results; the earlier first error wins."""
        return BatchResult(
            attempted=self.attempted + other.attempted,
            failure_count=self.failure_count + other.failure_count,
            first_error=self.first_error if self.first_error is not None else other.first_error,
        )

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "attempted": self.attempted,
            "failure_count": self.failure_count,
            "first_error": self.first_error,
        }


def apply_report(
    db: StockDatabase,
    store: Store,
    user: User,
    now: int,
    in_stock: bool,
    item_name: str,
) -> Item:
    """Apply one observation to one item inside a single transaction."""

    def mutate(item: Item | None) -> Item:
        if item is None:
            item = Item(name=item_name)
        item.stock_reports = merge_report(item.stock_reports, store, user, now, in_stock)
        return item

    return db.run_in_transaction(item_name, mutate)


def apply_reports(
    db: StockDatabase,
    store: Store,
    user: User,
    now: int,
    in_stock: bool,
    item_names: list[str],
) -> BatchResult:
    """
    Apply the same observation to every item in ``item_names``.

    Items are processed in order, one transaction each. Failures never stop
    the batch.
    """
    result = BatchResult()
    for item_name in item_names:
        result.attempted += 1
        try:
            apply_report(db, store, user, now, in_stock, item_name)
        except Exception as e:
            logger.warning(
                f"Failed to update item {item_name!r} "
                f"(store={store.store_id}, in_stock={in_stock}): {e}"
            )
            result.record_failure(f"failed to update item {item_name!r} in storage: {e}")

    if result.ok:
        logger.info(
            f"Applied {result.attempted} {'in-stock' if in_stock else 'out-of-stock'} "
            f"report(s) at store {store.store_id}"
        )
    return result
