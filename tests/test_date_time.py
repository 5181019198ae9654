"""
Unit tests for utils/date_time.py

Tests cover:
- Date formatting (weekday form, ranges within and across years)
- Datetime and time formatting, including ranges
- Time input helpers (display value, normalisation)
- Duration between two ISO datetimes
"""
import pytest

from utils.date_time import (
    NO_DATE, NO_VALUE, format_date_range, format_date_time, format_date_time_range,
    format_date_with_day, format_time, format_time_for_display, format_time_range,
    get_duration, normalise_time,
)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

class TestFormatDateWithDay:
    def test_includes_weekday(self):
        assert format_date_with_day("2025-08-01") == "Friday - 01/08/25"

    def test_missing_date(self):
        assert format_date_with_day(None) == NO_DATE

    def test_invalid_date(self):
        assert format_date_with_day("not a date") == NO_DATE


class TestFormatDateRange:
    def test_same_year_drops_start_year(self):
        assert format_date_range("2025-08-01", "2025-08-04") == "01 Aug - 04 Aug 2025"

    def test_different_years_keep_both(self):
        assert format_date_range("2025-12-28", "2026-01-03") == "28 Dec 2025 - 03 Jan 2026"

    def test_single_date(self):
        assert format_date_range("2025-08-01") == "01 Aug 2025"

    def test_missing_start(self):
        assert format_date_range(None, "2025-08-04") == NO_DATE

    def test_invalid_start(self):
        assert format_date_range("31/12/2025") == NO_DATE

    def test_invalid_end_falls_back_to_start(self):
        assert format_date_range("2025-08-01", "garbage") == "01 Aug 2025"


# ---------------------------------------------------------------------------
# Datetimes
# ---------------------------------------------------------------------------

class TestFormatDateTime:
    def test_morning(self):
        assert format_date_time("2025-08-01T09:00:00") == "01 Aug 2025 at 9:00 AM"

    def test_evening(self):
        assert format_date_time("2025-08-01T21:30") == "01 Aug 2025 at 9:30 PM"

    def test_just_after_midnight(self):
        assert format_date_time("2025-08-01T00:15:00") == "01 Aug 2025 at 12:15 AM"

    def test_missing(self):
        assert format_date_time(None) == NO_VALUE

    def test_invalid(self):
        assert format_date_time("soon") == NO_VALUE


class TestFormatDateTimeRange:
    def test_both_sides(self):
        result = format_date_time_range("2025-08-01T09:00:00", "2025-08-01T10:30:00")
        assert result == "01 Aug 2025 at 9:00 AM → 01 Aug 2025 at 10:30 AM"

    def test_departure_only(self):
        assert format_date_time_range("2025-08-01T09:00:00") == "01 Aug 2025 at 9:00 AM"

    def test_invalid_arrival_shows_departure(self):
        assert format_date_time_range("2025-08-01T09:00:00", "nope") == "01 Aug 2025 at 9:00 AM"

    def test_no_departure(self):
        assert format_date_time_range(None, "2025-08-01T10:30:00") == NO_VALUE


# ---------------------------------------------------------------------------
# Times
# ---------------------------------------------------------------------------

class TestFormatTime:
    def test_drops_seconds(self):
        assert format_time("13:05:00") == "13:05"

    def test_accepts_hours_and_minutes(self):
        assert format_time("07:45") == "07:45"

    def test_missing(self):
        assert format_time(None) == NO_VALUE

    def test_range(self):
        assert format_time_range("13:05:00", "15:30:00") == "13:05 - 15:30"

    def test_range_without_end(self):
        assert format_time_range("13:05:00", None) == "13:05"

    def test_range_without_start(self):
        assert format_time_range(None, "15:30:00") == NO_VALUE


class TestTimeInputs:
    def test_display_value_trims_seconds(self):
        assert format_time_for_display("09:30:00") == "09:30"

    @pytest.mark.parametrize("value", [None, "", "   ", "0930"])
    def test_display_value_empty(self, value):
        assert format_time_for_display(value) == ""

    def test_normalise_pads_seconds(self):
        assert normalise_time("09:30") == "09:30:00"

    def test_normalise_keeps_full_time(self):
        assert normalise_time("09:30:15") == "09:30:15"

    @pytest.mark.parametrize("value", [None, "", "0930"])
    def test_normalise_rejects(self, value):
        assert normalise_time(value) is None


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

class TestGetDuration:
    def test_hours_and_minutes(self):
        assert get_duration("2025-08-01T09:00:00", "2025-08-01T10:30:00") == "1 Hour 30m"

    def test_whole_hours(self):
        assert get_duration("2025-08-01T09:00:00", "2025-08-01T11:00:00") == "2 Hours"

    def test_minutes_only(self):
        assert get_duration("2025-08-01T09:00:00", "2025-08-01T09:45:00") == "45 Minutes"

    def test_overnight(self):
        assert get_duration("2025-08-01T22:00:00", "2025-08-02T01:05:00") == "3 Hours 5m"

    def test_arrival_before_departure(self):
        assert get_duration("2025-08-01T10:00:00", "2025-08-01T09:00:00") is None

    def test_missing_side(self):
        assert get_duration("2025-08-01T10:00:00", None) is None

    def test_invalid_side(self):
        assert get_duration("later", "2025-08-01T09:00:00") is None

    def test_mixed_timezone_awareness(self):
        assert get_duration("2025-08-01T09:00:00Z", "2025-08-01T10:00:00") is None
