"""
Journey lookups used to lay out a trip as a timeline.

A journey with a null ``departure_location_id`` is the trip's outbound leg
into a phase's first location; a null ``arrival_location_id`` marks the leg
out of a phase's last location. Journeys between the last location of one
phase and the first of the next are cross-phase journeys.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from constants import get_journey_mode_icon, get_journey_mode_label

from .date_time import format_date_time_range, get_duration


def combine_date_time_fields(values: dict) -> Tuple[Optional[str], Optional[str]]:
    """Merge the journey form's date and time inputs into ISO datetimes.

    A side is only produced when both its date and its time are present.
    """
    departure = None
    if values.get("departure_date") and values.get("departure_time"):
        departure = f"{values['departure_date']}T{values['departure_time']}"

    arrival = None
    if values.get("arrival_date") and values.get("arrival_time"):
        arrival = f"{values['arrival_date']}T{values['arrival_time']}"

    return departure, arrival


def get_first_location_of_phase(phase: dict) -> Optional[dict]:
    locations = phase.get("locations") or []
    return locations[0] if locations else None


def get_last_location_of_phase(phase: dict) -> Optional[dict]:
    locations = phase.get("locations") or []
    return locations[-1] if locations else None


def find_journey(journeys: List[dict], from_id: Optional[str], to_id: Optional[str]) -> Optional[dict]:
    for journey in journeys or []:
        if journey.get("departure_location_id") == from_id and journey.get("arrival_location_id") == to_id:
            return journey
    return None


def find_start_journey(journeys: List[dict], phase: dict) -> Optional[dict]:
    first = get_first_location_of_phase(phase)
    if first is None:
        return None
    return find_journey(journeys, None, first["id"])


def find_end_journey(journeys: List[dict], phase: dict) -> Optional[dict]:
    last = get_last_location_of_phase(phase)
    if last is None:
        return None
    return find_journey(journeys, last["id"], None)


def find_cross_phase_journey(journeys: List[dict], phases: List[dict], phase_index: int) -> Optional[dict]:
    """Journey from the end of phase ``phase_index`` into the next phase."""
    if not phases or phase_index < 0 or phase_index >= len(phases) - 1:
        return None
    from_location = get_last_location_of_phase(phases[phase_index])
    to_location = get_first_location_of_phase(phases[phase_index + 1])
    if from_location is None or to_location is None:
        return None
    return find_journey(journeys, from_location["id"], to_location["id"])


def describe_journey(journey: Optional[dict]) -> Optional[dict]:
    if journey is None:
        return None
    mode = journey.get("mode")
    return {
        **journey,
        "mode_label": get_journey_mode_label(mode),
        "mode_icon": get_journey_mode_icon(mode),
        "schedule": format_date_time_range(journey.get("departure_time"), journey.get("arrival_time")),
        "duration": get_duration(journey.get("departure_time"), journey.get("arrival_time")),
    }


def _section(trip: dict, phase: dict, phase_index: int) -> dict:
    phases = trip.get("trip_phases") or []
    journeys = trip.get("journeys") or []
    is_unassigned = phase_index == -1

    show_start = get_first_location_of_phase(phase) is not None and phase_index in (0, -1)
    show_end = get_last_location_of_phase(phase) is not None and (
        is_unassigned or phase_index == len(phases) - 1
    )
    cross_phase = None
    if not is_unassigned and len(phases) > 1:
        from_location = get_last_location_of_phase(phase)
        to_location = (
            get_first_location_of_phase(phases[phase_index + 1])
            if phase_index < len(phases) - 1 else None
        )
        if from_location and to_location:
            cross_phase = {
                "from_location_id": from_location["id"],
                "to_location_id": to_location["id"],
                "next_phase_id": phases[phase_index + 1].get("id"),
                "journey": describe_journey(find_cross_phase_journey(journeys, phases, phase_index)),
            }

    return {
        "phase_id": phase.get("id"),
        "phase_index": phase_index,
        "title": phase.get("title", "Unassigned"),
        "location_ids": [loc["id"] for loc in phase.get("locations") or []],
        "start_journey": describe_journey(find_start_journey(journeys, phase)) if show_start else None,
        "end_journey": describe_journey(find_end_journey(journeys, phase)) if show_end else None,
        "cross_phase": cross_phase,
        "show_start_journey": show_start,
        "show_end_journey": show_end,
    }


def build_phase_timeline(trip: dict) -> List[dict]:
    """One section per phase, plus a trailing "Unassigned" section when needed."""
    sections = [
        _section(trip, phase, index)
        for index, phase in enumerate(trip.get("trip_phases") or [])
    ]
    unassigned = trip.get("unassigned_locations") or []
    if unassigned:
        sections.append(_section(trip, {"title": "Unassigned", "locations": unassigned}, -1))
    return sections
