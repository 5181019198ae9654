"""
Dashboard filtering and ordering for the trip list.
"""

from __future__ import annotations

from datetime import datetime
from functools import cmp_to_key
from typing import List, Optional

TRIP_FILTERS = ("all", "upcoming", "past")


def _as_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    try:
        return datetime.fromisoformat(str(value)).replace(tzinfo=None)
    except ValueError:
        return None


def filter_trips(trips: List[dict], trip_filter: str = "all", now: Optional[datetime] = None) -> List[dict]:
    """Select trips for a dashboard tab.

    - "upcoming": trips with a start date that have not ended (no end date, or
      end date not before ``now``).
    - "past": trips whose end date is set and before ``now``.
    - "all" (or anything unknown): every trip.
    """
    now = now or datetime.now()

    def ends_before_now(trip: dict) -> bool:
        end = _as_datetime(trip.get("end_date"))
        return end is not None and end < now

    def not_yet_ended(trip: dict) -> bool:
        if not trip.get("end_date"):
            return True
        end = _as_datetime(trip["end_date"])
        return end is not None and end >= now

    if trip_filter == "upcoming":
        return [trip for trip in trips if trip.get("start_date") and not_yet_ended(trip)]
    if trip_filter == "past":
        return [trip for trip in trips if ends_before_now(trip)]
    return list(trips)


def _compare(a: dict, b: dict) -> int:
    a_start = _as_datetime(a.get("start_date"))
    b_start = _as_datetime(b.get("start_date"))

    if a_start and b_start:
        if a_start != b_start:
            return -1 if a_start > b_start else 1
        a_end = _as_datetime(a.get("end_date"))
        b_end = _as_datetime(b.get("end_date"))
        if a_end and b_end and a_end != b_end:
            return -1 if a_end > b_end else 1
    elif a_start:
        return -1
    elif b_start:
        return 1

    a_created = _as_datetime(a.get("created_at"))
    b_created = _as_datetime(b.get("created_at"))
    if a_created and b_created:
        if a_created == b_created:
            return 0
        return -1 if a_created > b_created else 1
    if a_created:
        return -1
    if b_created:
        return 1
    return 0


def sort_trips(trips: List[dict]) -> List[dict]:
    """Order trips for display.

    Dated trips come first, latest start date first (ties broken by the later
    end date). Undated trips follow, most recently created first. The sort is
    stable, so trips with nothing to compare keep their input order.
    """
    return sorted(trips, key=cmp_to_key(_compare))
