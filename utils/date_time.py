"""
Date and time formatting helpers.

Every formatter accepts the raw strings stored in the database
(``YYYY-MM-DD`` dates, ``HH:MM[:SS]`` times, ISO datetimes) and returns a
display string. Missing or unparseable input never raises; each function
documents the fallback it returns instead.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

NO_DATE = "No date set"
NO_VALUE = "-"


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def _twelve_hour(moment: datetime) -> str:
    """9:05 AM style clock time."""
    hour = moment.strftime("%I").lstrip("0") or "12"
    return f"{hour}:{moment:%M} {'AM' if moment.hour < 12 else 'PM'}"


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def format_date_with_day(value: Optional[str]) -> str:
    """Weekday form, e.g. Friday - 01/08/25. Falls back to "No date set"."""
    parsed = _parse_date(value)
    if parsed is None:
        return NO_DATE
    return parsed.strftime("%A - %d/%m/%y")


def format_date_range(start_date: Optional[str] = None, end_date: Optional[str] = None) -> str:
    """Format a single date or a date range.

    The start year is dropped when both dates fall in the same year:
    "01 Aug - 04 Aug 2025", otherwise "28 Dec 2025 - 03 Jan 2026".
    A missing or invalid start gives "No date set"; a missing or invalid end
    gives the start date alone.
    """
    start = _parse_date(start_date)
    if start is None:
        return NO_DATE

    formatted_start = start.strftime("%d %b %Y")
    end = _parse_date(end_date)
    if end is None:
        return formatted_start

    formatted_end = end.strftime("%d %b %Y")
    if start.year == end.year:
        return f"{start.strftime('%d %b')} - {formatted_end}"
    return f"{formatted_start} - {formatted_end}"


def format_date_time(value: Optional[str]) -> str:
    """Readable datetime, e.g. 01 Aug 2025 at 9:00 AM. Falls back to "-"."""
    parsed = _parse_datetime(value)
    if parsed is None:
        return NO_VALUE
    return f"{parsed.strftime('%d %b %Y')} at {_twelve_hour(parsed)}"


def format_date_time_range(departure: Optional[str] = None, arrival: Optional[str] = None) -> str:
    formatted_departure = format_date_time(departure)
    formatted_arrival = format_date_time(arrival)

    if not departure:
        return NO_VALUE
    if not arrival or formatted_arrival == NO_VALUE:
        return formatted_departure
    return f"{formatted_departure} → {formatted_arrival}"


# ---------------------------------------------------------------------------
# Times
# ---------------------------------------------------------------------------

def format_time(value: Optional[str]) -> str:
    """Trim a stored time to "HH:MM". Falls back to "-"."""
    parsed = _parse_time(value)
    if parsed is None:
        return NO_VALUE
    return parsed.strftime("%H:%M")


def format_time_range(start: Optional[str] = None, end: Optional[str] = None) -> str:
    formatted_start = format_time(start)
    formatted_end = format_time(end)

    if not start:
        return NO_VALUE
    if not end or formatted_end == NO_VALUE:
        return formatted_start
    return f"{formatted_start} - {formatted_end}"


def format_time_for_display(value: Optional[str]) -> str:
    """Value for an HTML time input: "HH:MM", or "" when there is nothing usable."""
    if not value or not value.strip():
        return ""
    parts = value.split(":")
    if len(parts) >= 2:
        return f"{parts[0]}:{parts[1]}"
    return ""


def normalise_time(value: Optional[str]) -> Optional[str]:
    """Pad "HH:MM" to "HH:MM:SS"; values without a colon are rejected with None."""
    if not value or not value.strip():
        return None
    parts = value.split(":")
    if len(parts) == 3:
        return value
    if len(parts) == 2:
        return f"{value}:00"
    return None


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

def get_duration(departure_time: Optional[str], arrival_time: Optional[str]) -> Optional[str]:
    """Human readable gap between two ISO datetimes.

    >>> get_duration("2025-08-01T09:00:00", "2025-08-01T10:30:00")
    '1 Hour 30m'

    Returns None when either side is missing or invalid, or when the arrival
    precedes the departure.
    """
    departure = _parse_datetime(departure_time)
    arrival = _parse_datetime(arrival_time)
    if departure is None or arrival is None:
        return None

    try:
        seconds = (arrival - departure).total_seconds()
    except TypeError:
        # naive vs. aware timestamps
        return None
    if seconds < 0:
        return None

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours > 0:
        unit = "Hour" if hours == 1 else "Hours"
        suffix = f" {minutes}m" if minutes > 0 else ""
        return f"{hours} {unit}{suffix}"
    return f"{minutes} Minutes"
