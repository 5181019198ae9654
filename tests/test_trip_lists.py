"""
Unit tests for utils/trip_lists.py, utils/grouping.py and utils/users.py
"""
from datetime import datetime

from utils.grouping import get_location_date_range, group_activities_by_date
from utils.trip_lists import filter_trips, sort_trips
from utils.users import get_user_display_name, get_user_initials

NOW = datetime(2025, 8, 10, 12, 0)


def _trip(trip_id, start=None, end=None, created="2025-01-01T00:00:00"):
    return {"id": trip_id, "start_date": start, "end_date": end, "created_at": created}


# ---------------------------------------------------------------------------
# filter_trips
# ---------------------------------------------------------------------------

class TestFilterTrips:
    def setup_method(self):
        self.trips = [
            _trip("past", "2025-07-01", "2025-07-05"),
            _trip("ongoing", "2025-08-05", "2025-08-20"),
            _trip("future", "2025-09-01", "2025-09-10"),
            _trip("open-ended", "2025-09-01"),
            _trip("undated"),
        ]

    def _ids(self, trips):
        return [t["id"] for t in trips]

    def test_all_returns_everything(self):
        assert self._ids(filter_trips(self.trips, "all", now=NOW)) == [t["id"] for t in self.trips]

    def test_upcoming(self):
        assert self._ids(filter_trips(self.trips, "upcoming", now=NOW)) == ["ongoing", "future", "open-ended"]

    def test_past(self):
        assert self._ids(filter_trips(self.trips, "past", now=NOW)) == ["past"]

    def test_undated_trip_only_in_all(self):
        undated = [_trip("undated")]
        assert filter_trips(undated, "upcoming", now=NOW) == []
        assert filter_trips(undated, "past", now=NOW) == []

    def test_unknown_filter_behaves_like_all(self):
        assert len(filter_trips(self.trips, "someday", now=NOW)) == len(self.trips)


# ---------------------------------------------------------------------------
# sort_trips
# ---------------------------------------------------------------------------

class TestSortTrips:
    def test_latest_start_first(self):
        trips = [_trip("a", "2025-06-01"), _trip("b", "2025-09-01"), _trip("c", "2025-07-01")]
        assert [t["id"] for t in sort_trips(trips)] == ["b", "c", "a"]

    def test_same_start_later_end_first(self):
        trips = [_trip("short", "2025-06-01", "2025-06-03"), _trip("long", "2025-06-01", "2025-06-10")]
        assert [t["id"] for t in sort_trips(trips)] == ["long", "short"]

    def test_dated_before_undated(self):
        trips = [_trip("undated"), _trip("dated", "2020-01-01")]
        assert [t["id"] for t in sort_trips(trips)] == ["dated", "undated"]

    def test_undated_newest_created_first(self):
        trips = [
            _trip("old", created="2025-01-01T08:00:00"),
            _trip("new", created="2025-03-01T08:00:00"),
        ]
        assert [t["id"] for t in sort_trips(trips)] == ["new", "old"]

    def test_created_at_beats_missing_created_at(self):
        trips = [_trip("no-created", created=None), _trip("created")]
        assert [t["id"] for t in sort_trips(trips)] == ["created", "no-created"]

    def test_does_not_mutate_input(self):
        trips = [_trip("a", "2025-06-01"), _trip("b", "2025-09-01")]
        sort_trips(trips)
        assert [t["id"] for t in trips] == ["a", "b"]


# ---------------------------------------------------------------------------
# grouping
# ---------------------------------------------------------------------------

class TestGroupActivitiesByDate:
    def test_groups_and_orders_by_start_time(self):
        activities = [
            {"id": "3", "date": "2025-08-02", "start_time": "10:00:00"},
            {"id": "2", "date": "2025-08-01", "start_time": "14:00:00"},
            {"id": "1", "date": "2025-08-01", "start_time": "09:00:00"},
            {"id": "0", "date": "2025-08-01", "start_time": None},
        ]
        grouped = group_activities_by_date(activities)
        assert set(grouped) == {"2025-08-01", "2025-08-02"}
        assert [a["id"] for a in grouped["2025-08-01"]] == ["0", "1", "2"]

    def test_empty(self):
        assert group_activities_by_date([]) == {}


class TestLocationDateRange:
    def test_spans_activities_and_stays(self):
        location = {
            "activities": [{"date": "2025-08-03"}],
            "accommodations": [{"check_in": "2025-08-01", "check_out": "2025-08-04"}],
        }
        assert get_location_date_range(location) == "01 Aug - 04 Aug 2025"

    def test_single_day(self):
        location = {"activities": [{"date": "2025-08-03"}, {"date": "2025-08-03"}], "accommodations": []}
        assert get_location_date_range(location) == "03 Aug 2025"

    def test_no_dates(self):
        assert get_location_date_range({"activities": [], "accommodations": [{"check_in": None}]}) is None


# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------

class TestUserDisplay:
    def test_display_name_prefers_full_name(self):
        assert get_user_display_name({"full_name": "Ada Lovelace", "email": "ada@example.com"}) == "Ada Lovelace"

    def test_display_name_falls_back_to_email(self):
        assert get_user_display_name({"full_name": None, "email": "ada@example.com"}) == "ada@example.com"

    def test_display_name_without_user(self):
        assert get_user_display_name(None) == ""

    def test_initials_from_name(self):
        assert get_user_initials({"full_name": "ada king lovelace"}) == "AK"

    def test_initials_from_email(self):
        assert get_user_initials({"email": "grace@example.com"}) == "G"

    def test_initials_default(self):
        assert get_user_initials({}) == "U"

    def test_blank_full_name_falls_back(self):
        user = {"full_name": "   ", "email": "grace@example.com"}
        assert get_user_initials(user) == "G"
        assert get_user_display_name(user) == "grace@example.com"

    def test_blank_full_name_without_email(self):
        assert get_user_initials({"full_name": " \t "}) == "U"
