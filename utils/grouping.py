from __future__ import annotations

from typing import Dict, List, Optional

from .date_time import format_date_range


def group_activities_by_date(activities: List[dict]) -> Dict[str, List[dict]]:
    """Bucket activities by their ``date``, each bucket ordered by start time."""
    grouped: Dict[str, List[dict]] = {}
    for activity in activities:
        grouped.setdefault(activity.get("date"), []).append(activity)

    for day in grouped.values():
        day.sort(key=lambda a: a.get("start_time") or "")
    return grouped


def get_location_date_range(location: dict) -> Optional[str]:
    """Date span covered by a location's activities and accommodation stays.

    Returns None when nothing in the location carries a date.
    """
    dates = [a["date"] for a in location.get("activities") or [] if a.get("date")]
    for accommodation in location.get("accommodations") or []:
        if accommodation.get("check_in"):
            dates.append(accommodation["check_in"])
        if accommodation.get("check_out"):
            dates.append(accommodation["check_out"])

    if not dates:
        return None

    dates.sort()
    start, end = dates[0], dates[-1]
    if start == end:
        return format_date_range(start)
    return format_date_range(start, end)
