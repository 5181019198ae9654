"""
Map pins derived from a trip detail payload.

``generate_map_markers`` takes the nested structure returned by
``queries.get_trip_detail`` (phases -> locations -> activities /
accommodations, unassigned locations, journeys with resolved places) and
emits one marker per item that has coordinates. Nothing here touches the
database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from dataclasses_json import dataclass_json

from .date_time import format_date_range, format_date_time, format_date_with_day

UNASSIGNED_INDEX = -1
UNASSIGNED_NAME = "Unassigned"

MARKER_TYPE_LABELS = {
    "location": "Location",
    "activity": "Activity",
    "accommodation": "Accommodation",
    "journey_departure": "Journey Departure",
    "journey_arrival": "Journey Arrival",
}


@dataclass_json
@dataclass
class MapMarker:
    id: str
    name: str
    lat: float
    lng: float
    type: str
    phase_index: int
    phase_name: str
    parent_location: Optional[dict] = field(default=None, repr=False)

    def is_journey(self) -> bool:
        return self.type in ("journey_departure", "journey_arrival")


def _coords(place: Optional[dict]):
    if not place or place.get("lat") is None or place.get("lng") is None:
        return None
    return place["lat"], place["lng"]


def _place_marker(prefix, item, location, phase_index, phase_name) -> Optional[MapMarker]:
    coords = _coords(item.get("place"))
    if coords is None:
        return None
    return MapMarker(
        id=f"{prefix}-{item['id']}",
        name=item.get("name") or "",
        lat=coords[0],
        lng=coords[1],
        type=prefix,
        phase_index=phase_index,
        phase_name=phase_name,
        parent_location=location,
    )


def _journey_marker(journey, side, phase_index, phase_name) -> Optional[MapMarker]:
    place = journey.get(f"{side}_place")
    coords = _coords(place)
    if coords is None:
        return None
    return MapMarker(
        id=f"journey-{side}-{journey['id']}",
        name=place.get("name") or "",
        lat=coords[0],
        lng=coords[1],
        type=f"journey_{side}",
        phase_index=phase_index,
        phase_name=phase_name,
    )


def generate_map_markers(trip: dict) -> List[MapMarker]:
    phases = trip.get("trip_phases") or []
    journeys = trip.get("journeys") or []

    tagged = []
    phase_location_ids: List[Set[str]] = []
    for phase_index, phase in enumerate(phases):
        locations = phase.get("locations") or []
        phase_location_ids.append({loc["id"] for loc in locations})
        tagged.extend((loc, phase_index, phase.get("title") or "") for loc in locations)

    in_any_phase = set().union(*phase_location_ids) if phase_location_ids else set()
    tagged.extend(
        (loc, UNASSIGNED_INDEX, UNASSIGNED_NAME)
        for loc in trip.get("unassigned_locations") or []
        if loc["id"] not in in_any_phase
    )

    markers: List[MapMarker] = []
    for location, phase_index, phase_name in tagged:
        candidates = [_place_marker("location", location, location, phase_index, phase_name)]
        candidates += [
            _place_marker("activity", activity, location, phase_index, phase_name)
            for activity in location.get("activities") or []
        ]
        candidates += [
            _place_marker("accommodation", accommodation, location, phase_index, phase_name)
            for accommodation in location.get("accommodations") or []
        ]
        markers.extend(m for m in candidates if m is not None)

    # Each journey endpoint is pinned once: under the phase holding its
    # location, or under "Unassigned" when no phase does.
    for journey in journeys:
        for side in ("departure", "arrival"):
            location_id = journey.get(f"{side}_location_id")
            phase_index = next(
                (i for i, ids in enumerate(phase_location_ids) if location_id and location_id in ids),
                None,
            )
            if phase_index is None:
                marker = _journey_marker(journey, side, UNASSIGNED_INDEX, UNASSIGNED_NAME)
            else:
                marker = _journey_marker(journey, side, phase_index, phases[phase_index].get("title") or "")
            if marker is not None:
                markers.append(marker)

    return markers


def get_marker_type_label(marker_type: str) -> str:
    return MARKER_TYPE_LABELS.get(marker_type, marker_type)


def get_marker_date_info(marker: MapMarker, trip: dict) -> Optional[str]:
    """Date line shown in the marker's info window, or None."""
    if marker.type == "activity" and marker.parent_location:
        for activity in marker.parent_location.get("activities") or []:
            if f"activity-{activity['id']}" == marker.id and activity.get("date"):
                return format_date_with_day(activity["date"])

    elif marker.type == "accommodation" and marker.parent_location:
        for accommodation in marker.parent_location.get("accommodations") or []:
            if f"accommodation-{accommodation['id']}" != marker.id:
                continue
            if accommodation.get("check_in") or accommodation.get("check_out"):
                return format_date_range(accommodation.get("check_in"), accommodation.get("check_out"))

    elif marker.is_journey():
        side = "departure" if marker.type == "journey_departure" else "arrival"
        for journey in trip.get("journeys") or []:
            if f"journey-{side}-{journey['id']}" == marker.id and journey.get(f"{side}_time"):
                return f"{side.title()}: {format_date_time(journey[f'{side}_time'])}"

    return None


def get_target_id_for_marker(marker: MapMarker) -> str:
    """Element id of the card a marker click should scroll to."""
    if marker.is_journey():
        return "journey-" + re.sub(r"^journey-(departure|arrival)-", "", marker.id)
    return marker.id


def marker_payload(marker: MapMarker, trip: dict) -> dict:
    payload = marker.to_dict()
    parent = payload.pop("parent_location", None)
    payload.update(
        parent_location_id=parent["id"] if parent else None,
        label=get_marker_type_label(marker.type),
        date_info=get_marker_date_info(marker, trip),
        target_id=get_target_id_for_marker(marker),
    )
    return payload
