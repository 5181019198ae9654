"""
Request bodies. Validation runs before any store call; FastAPI answers 422
with the field errors when a form does not validate.

Dates are ``YYYY-MM-DD``; times are ``H:MM`` or ``HH:MM[:SS]`` and come out
zero-padded. Blank strings pass through so the mutations can store NULL.
"""
import re
import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator, model_validator

from constants import ACTIVITY_TYPES, JOURNEY_MODES
from utils.journeys import combine_date_time_fields

ActivityType = Literal[ACTIVITY_TYPES]
JourneyMode = Literal[JOURNEY_MODES]

_http_url = TypeAdapter(HttpUrl)
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def clean_date(value: Optional[str]) -> Optional[str]:
    if not value or not value.strip():
        return value
    try:
        return datetime.date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        raise ValueError("Must be a valid date (YYYY-MM-DD)")


def clean_time(value: Optional[str]) -> Optional[str]:
    if not value or not value.strip():
        return value
    match = _TIME_RE.match(value.strip())
    if match is None:
        raise ValueError("Must be a valid time (HH:MM)")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = match.group(3)
    if hour > 23 or minute > 59 or (second is not None and int(second) > 59):
        raise ValueError("Must be a valid time (HH:MM)")
    cleaned = f"{hour:02d}:{minute:02d}"
    return f"{cleaned}:{second}" if second is not None else cleaned


def _before(start: Optional[str], end: Optional[str], parse) -> bool:
    """True when both values are set and ``end`` is earlier than ``start``."""
    if not start or not end:
        return False
    return parse(end) < parse(start)


# Auth
class UserCreate(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: Optional[str] = None


class UserLogin(BaseModel):
    email: str
    password: str


class AccountUpdate(BaseModel):
    full_name: Optional[str] = None


# Trips
class TripForm(BaseModel):
    title: str = Field(min_length=1, description="Trip title is required")
    description: Optional[str] = None
    start_date: Optional[str] = None  # YYYY-MM-DD
    end_date: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_must_be_valid(cls, value):
        return clean_date(value)


class TripPhaseForm(BaseModel):
    title: str = Field(min_length=1, description="Title is required")
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    order: Optional[int] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_must_be_valid(cls, value):
        return clean_date(value)


class LocationForm(BaseModel):
    name: str = Field(min_length=1, description="Location name is required")
    region: Optional[str] = None
    notes: Optional[str] = None
    phase_id: Optional[str] = None
    place_id: Optional[str] = None


class AccommodationForm(BaseModel):
    name: str = Field(min_length=1, description="Accommodation name is required")
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    url: Optional[str] = None
    notes: Optional[str] = None
    place_id: Optional[str] = None

    @field_validator("check_in", "check_out")
    @classmethod
    def dates_must_be_valid(cls, value):
        return clean_date(value)

    @field_validator("url")
    @classmethod
    def url_must_be_valid(cls, value):
        if value:
            try:
                _http_url.validate_python(value)
            except ValidationError:
                raise ValueError("Must be a valid URL")
        return value

    @model_validator(mode="after")
    def check_out_after_check_in(self):
        if _before(self.check_in, self.check_out, datetime.date.fromisoformat):
            raise ValueError("Check-out date must be after check-in date")
        return self


class ActivityForm(BaseModel):
    name: str = Field(min_length=1)
    date: str = Field(min_length=1)
    start_time: Optional[str] = None  # HH:MM
    end_time: Optional[str] = None
    notes: Optional[str] = None
    activity_type: ActivityType
    place_id: Optional[str] = None

    @field_validator("date")
    @classmethod
    def dates_must_be_valid(cls, value):
        if not value.strip():
            raise ValueError("Date is required")
        return clean_date(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def times_must_be_valid(cls, value):
        return clean_time(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if _before(self.start_time, self.end_time, datetime.time.fromisoformat):
            raise ValueError("End time must be after start time")
        return self


class JourneyForm(BaseModel):
    mode: JourneyMode
    provider: Optional[str] = None
    departure_date: Optional[str] = None
    departure_time: Optional[str] = None
    arrival_date: Optional[str] = None
    arrival_time: Optional[str] = None
    notes: Optional[str] = None
    departure_location_id: Optional[str] = None
    arrival_location_id: Optional[str] = None

    @field_validator("departure_date", "arrival_date")
    @classmethod
    def dates_must_be_valid(cls, value):
        return clean_date(value)

    @field_validator("departure_time", "arrival_time")
    @classmethod
    def times_must_be_valid(cls, value):
        return clean_time(value)

    def to_row(self) -> dict:
        """Row fields with the split date/time inputs merged into datetimes."""
        values = self.model_dump(exclude_unset=True)
        departure, arrival = combine_date_time_fields(values)
        row = {
            key: value for key, value in values.items()
            if key not in ("departure_date", "departure_time", "arrival_date", "arrival_time")
        }
        if {"departure_date", "departure_time"} & values.keys():
            row["departure_time"] = departure
        if {"arrival_date", "arrival_time"} & values.keys():
            row["arrival_time"] = arrival
        return row


# Places
class PlaceSearchRequest(BaseModel):
    query: Optional[str] = None


class TrackDownloadRequest(BaseModel):
    downloadUrl: Optional[str] = None


class GooglePlaceResult(BaseModel):
    """A normalised Places API record, as returned by the search proxy."""
    place_id: str
    name: str = ""
    formatted_address: str = ""
    lat: float = 0
    lng: float = 0
    types: list = []
    rating: Optional[float] = None
    price_level: Optional[int] = None
    opening_hours: Optional[dict] = None
    photos: Optional[list] = None
    website: Optional[str] = None
    formatted_phone_number: Optional[str] = None
