"""Tests for the stock report merge policy."""

from stock_aid.merge import find_report, merge_report
from stock_aid.models import Store, User


def _store(store_id="s1"):
    return Store(store_id=store_id, name="Safeway", address="1 Main St, Town, CA 94043", lat=37.4, lng=-122.1)


def _user(user_id="u1"):
    return User(user_id=user_id, first_name="A", last_name="B", zip_code="94043")


class TestMergeReport:
    """Test merge_report."""

    def test_first_report_creates_entry(self):
        """A first sighting appends a report seen once by the reporter."""
        reports = merge_report([], _store(), _user(), 100, True)

        assert len(reports) == 1
        report = reports[0]
        assert report.in_stock is True
        assert report.seen_count == 1
        assert report.timestamp_sec == 100
        assert [o.user_id for o in report.observers] == ["u1"]
        assert report.observers[0].timestamp_sec == 100

    def test_same_user_again_only_moves_timestamp(self):
        """Re-reporting by the same user does not bump seen_count."""
        reports = merge_report([], _store(), _user(), 100, True)
        reports = merge_report(reports, _store(), _user(), 250, True)

        assert len(reports) == 1
        assert reports[0].seen_count == 1
        assert len(reports[0].observers) == 1
        assert reports[0].timestamp_sec == 250
        # observer keeps the time they first reported
        assert reports[0].observers[0].timestamp_sec == 100

    def test_distinct_users_are_counted(self):
        """Each new observer increments seen_count."""
        reports = []
        for i, user_id in enumerate(["u1", "u2", "u3"]):
            reports = merge_report(reports, _store(), _user(user_id), 100 + i, False)

        assert len(reports) == 1
        assert reports[0].seen_count == 3
        assert [o.user_id for o in reports[0].observers] == ["u1", "u2", "u3"]
        assert reports[0].timestamp_sec == 102

    def test_in_stock_and_out_of_stock_kept_apart(self):
        """The same store gets one report per availability flag."""
        reports = merge_report([], _store(), _user(), 100, True)
        reports = merge_report(reports, _store(), _user("u2"), 200, False)

        assert len(reports) == 2
        assert reports[0].in_stock is True
        assert reports[1].in_stock is False
        assert reports[0].seen_count == 1
        assert reports[1].seen_count == 1

    def test_new_stores_append_in_first_seen_order(self):
        """Reports for new stores are appended, never reordered."""
        reports = merge_report([], _store("s2"), _user(), 100, True)
        reports = merge_report(reports, _store("s1"), _user(), 200, True)
        reports = merge_report(reports, _store("s2"), _user("u2"), 300, True)

        assert [r.store.store_id for r in reports] == ["s2", "s1"]
        assert reports[0].seen_count == 2


class TestFindReport:
    """Test find_report."""

    def test_matches_store_and_flag(self):
        reports = merge_report([], _store(), _user(), 100, True)
        assert find_report(reports, "s1", True) is reports[0]
        assert find_report(reports, "s1", False) is None
        assert find_report(reports, "other", True) is None
