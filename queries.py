"""
Read operations. Results are plain dicts cached in ``database.query_cache``
until a mutation invalidates them.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from database import (
    Location, Place, QueryCache, RowNotFound, StoreError, Trip, TripPhase,
    as_dict, query_cache, store_message,
)
from utils.grouping import get_location_date_range

logger = logging.getLogger(__name__)


def _run(db: Session, description: str, loader):
    try:
        return loader()
    except SQLAlchemyError as exc:
        db.rollback()
        message = store_message(exc)
        logger.warning("%s query error: %s", description, message)
        raise StoreError(message) from exc


def _place(place: Optional[Place]) -> Optional[dict]:
    return as_dict(place) if place is not None else None


def _location(location: Location) -> dict:
    data = as_dict(location)
    data["place"] = _place(location.place)
    data["accommodations"] = [
        {**as_dict(a), "place": _place(a.place)} for a in location.accommodations
    ]
    data["activities"] = [
        {**as_dict(a), "place": _place(a.place)} for a in location.activities
    ]
    data["date_range"] = get_location_date_range(data)
    return data


def _journey(journey) -> dict:
    data = as_dict(journey)
    data["departure_place"] = _place(journey.departure_location.place) if journey.departure_location else None
    data["arrival_place"] = _place(journey.arrival_location.place) if journey.arrival_location else None
    return data


def _trip_detail(trip: Trip) -> dict:
    data = as_dict(trip)
    data["trip_phases"] = [
        {**as_dict(phase), "locations": [_location(loc) for loc in phase.locations]}
        for phase in trip.trip_phases
    ]
    phase_location_ids = {loc["id"] for phase in data["trip_phases"] for loc in phase["locations"]}
    data["unassigned_locations"] = [
        _location(loc) for loc in trip.locations if loc.id not in phase_location_ids
    ]
    data["journeys"] = [_journey(j) for j in trip.journeys]
    return data


def get_trips(db: Session, user_id: Optional[str], cache: QueryCache = query_cache) -> List[dict]:
    """The user's trips, newest first. Disabled (empty) without a signed-in user."""
    if not user_id:
        return []

    def load():
        rows = (
            db.query(Trip)
            .filter(Trip.user_id == user_id)
            .order_by(Trip.created_at.desc())
            .all()
        )
        return [as_dict(t) for t in rows]

    return cache.fetch(("trips", user_id), lambda: _run(db, "Trips", load))


def get_trip_detail(db: Session, trip_id: str, user_id: Optional[str], cache: QueryCache = query_cache) -> dict:
    """A trip with its phases, locations, unassigned locations and journeys.

    Raises RowNotFound when the trip does not exist or belongs to someone else.
    """
    if not trip_id or not user_id:
        raise RowNotFound("Trip not found")

    def load():
        location_children = (
            selectinload(Location.place),
            selectinload(Location.accommodations),
            selectinload(Location.activities),
        )
        trip = (
            db.query(Trip)
            .options(
                selectinload(Trip.trip_phases).selectinload(TripPhase.locations).options(*location_children),
                selectinload(Trip.locations).options(*location_children),
                selectinload(Trip.journeys),
            )
            .filter(Trip.id == trip_id)
            .first()
        )
        if trip is None:
            raise RowNotFound("Trip not found")
        return _trip_detail(trip)

    detail = cache.fetch(("trip", trip_id), lambda: _run(db, "Trip detail", load))
    if detail["user_id"] != user_id:
        raise RowNotFound("Trip not found")
    return detail


def get_place_detail(db: Session, place_id: Optional[str], cache: QueryCache = query_cache) -> Optional[dict]:
    if not place_id:
        return None

    def load():
        return _place(db.query(Place).filter(Place.id == place_id).first())

    return cache.fetch(("place", place_id), lambda: _run(db, "Place detail", load))
