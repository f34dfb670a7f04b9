"""Stock report merge policy.

Pure: the only clock input is ``now``. Storage and transactions live in
the aggregation module.
"""

from __future__ import annotations

from .models import Observer, Store, StockReport, User


def find_report(reports: list[StockReport], store_id: str, in_stock: bool) -> StockReport | None:
    """The report for (store, flag), if one exists."""
    for report in reports:
        if report.store.store_id == store_id and report.in_stock == in_stock:
            return report
    return None


def merge_report(
    reports: list[StockReport],
    store: Store,
    user: User,
    now: int,
    in_stock: bool,
) -> list[StockReport]:
    """Fold one user's observation into an item's report list.

    An existing report for the same store and flag is extended: the user is
    added as an observer (bumping seen_count) unless they already are one,
    and the report timestamp moves to ``now`` either way. Otherwise a new
    report is appended, so report order is first-seen order.
    """
    report = find_report(reports, store.store_id, in_stock)
    if report is not None:
        if not report.has_observer(user.user_id):
            report.observers.append(Observer(user_id=user.user_id, timestamp_sec=now))
            report.seen_count += 1
        report.timestamp_sec = now
        return reports

    reports.append(
        StockReport(
            store=store,
            in_stock=in_stock,
            timestamp_sec=now,
            observers=[Observer(user_id=user.user_id, timestamp_sec=now)],
            seen_count=1,
        )
    )
    return reports
