"""
Unit tests for forms.py and constants.py
"""
import pytest
from pydantic import ValidationError

from constants import (
    ACTIVITY_TYPES, JOURNEY_MODES, get_activity_type_icon, get_activity_type_label,
    get_journey_mode_label, options,
)
from forms import AccommodationForm, ActivityForm, JourneyForm, LocationForm, TripForm


class TestTripForm:
    def test_title_required(self):
        with pytest.raises(ValidationError):
            TripForm(title="")

    def test_optional_fields_default_to_none(self):
        form = TripForm(title="Scotland")
        assert form.description is None
        assert form.start_date is None

    def test_invalid_start_date(self):
        with pytest.raises(ValidationError, match="Must be a valid date"):
            TripForm(title="Scotland", start_date="banana")

    def test_impossible_date(self):
        with pytest.raises(ValidationError, match="Must be a valid date"):
            TripForm(title="Scotland", end_date="2025-02-30")


class TestLocationForm:
    def test_name_required(self):
        with pytest.raises(ValidationError):
            LocationForm(name="")


class TestAccommodationForm:
    def test_valid(self):
        form = AccommodationForm(name="Hostel", url="https://example.com/booking", check_in="2025-08-01",
                                 check_out="2025-08-04")
        assert form.url == "https://example.com/booking"

    def test_invalid_url(self):
        with pytest.raises(ValidationError, match="Must be a valid URL"):
            AccommodationForm(name="Hostel", url="not a url")

    def test_empty_url_allowed(self):
        assert AccommodationForm(name="Hostel", url="").url == ""

    def test_check_out_before_check_in(self):
        with pytest.raises(ValidationError, match="Check-out date must be after check-in date"):
            AccommodationForm(name="Hostel", check_in="2025-08-04", check_out="2025-08-01")

    def test_garbage_check_in(self):
        with pytest.raises(ValidationError, match="Must be a valid date"):
            AccommodationForm(name="Hostel", check_in="next friday")


class TestActivityForm:
    def test_type_must_be_known(self):
        with pytest.raises(ValidationError):
            ActivityForm(name="Dinner", date="2025-08-01", activity_type="karaoke")

    def test_date_required(self):
        with pytest.raises(ValidationError):
            ActivityForm(name="Dinner", date="", activity_type="food")

    def test_end_before_start(self):
        with pytest.raises(ValidationError, match="End time must be after start time"):
            ActivityForm(name="Dinner", date="2025-08-01", activity_type="food",
                         start_time="20:00", end_time="19:00")

    def test_single_digit_hour_compares_as_time(self):
        form = ActivityForm(name="Coffee", date="2025-08-01", activity_type="food",
                            start_time="9:30", end_time="10:00")
        assert form.start_time == "09:30"
        assert form.end_time == "10:00"

    def test_garbage_date(self):
        with pytest.raises(ValidationError, match="Must be a valid date"):
            ActivityForm(name="Dinner", date="banana", activity_type="food")

    def test_garbage_times(self):
        with pytest.raises(ValidationError, match="Must be a valid time"):
            ActivityForm(name="Dinner", date="2025-08-01", activity_type="food",
                         start_time="ab:cd", end_time="zz:zz")

    def test_hour_out_of_range(self):
        with pytest.raises(ValidationError, match="Must be a valid time"):
            ActivityForm(name="Dinner", date="2025-08-01", activity_type="food", start_time="25:00")

    def test_seconds_kept(self):
        form = ActivityForm(name="Dinner", date="2025-08-01", activity_type="food", start_time="19:00:30")
        assert form.start_time == "19:00:30"


class TestJourneyForm:
    def test_mode_must_be_known(self):
        with pytest.raises(ValidationError):
            JourneyForm(mode="teleport")

    def test_to_row_merges_date_and_time(self):
        form = JourneyForm(mode="train", departure_date="2025-08-01", departure_time="09:00",
                           arrival_date="2025-08-01", arrival_time="11:30", provider="LNER")
        assert form.to_row() == {
            "mode": "train",
            "provider": "LNER",
            "departure_time": "2025-08-01T09:00",
            "arrival_time": "2025-08-01T11:30",
        }

    def test_to_row_date_without_time_clears_datetime(self):
        form = JourneyForm(mode="train", departure_date="2025-08-01")
        assert form.to_row() == {"mode": "train", "departure_time": None}

    def test_to_row_leaves_unsent_fields_out(self):
        assert JourneyForm(mode="bus").to_row() == {"mode": "bus"}

    def test_to_row_pads_short_hour(self):
        form = JourneyForm(mode="train", departure_date="2025-08-01", departure_time="9:05")
        assert form.to_row() == {"mode": "train", "departure_time": "2025-08-01T09:05"}

    def test_invalid_departure_time(self):
        with pytest.raises(ValidationError, match="Must be a valid time"):
            JourneyForm(mode="train", departure_date="2025-08-01", departure_time="noon")


class TestConstants:
    def test_labels(self):
        assert get_activity_type_label("food") == "Food & Drink"
        assert get_journey_mode_label("metro") == "Metro/Subway"

    def test_unknown_values_fall_back(self):
        assert get_activity_type_label("karaoke") == "Other"
        assert get_activity_type_icon("karaoke") == "❓"

    def test_options_cover_every_value(self):
        opts = options()
        assert [o["value"] for o in opts["activity_types"]] == list(ACTIVITY_TYPES)
        assert [o["value"] for o in opts["journey_modes"]] == list(JOURNEY_MODES)
        assert opts["journey_modes"][0] == {"value": "flight", "label": "Flight", "icon": "✈️"}
