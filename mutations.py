"""
Write operations against the trip store.

Every mutation issues one insert, update or delete for the acting user and
returns the affected row as a dict (deletes return None). On success the
cached queries that embed the row are invalidated; on failure the session is
rolled back, nothing is invalidated, and a ``StoreError`` carrying the store's
message is raised. Rows the user does not own raise ``RowNotFound``, and so
do phases or locations in the payload that belong to another user or trip.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import (
    Accommodation, Activity, Journey, Location, Place, QueryCache, RowNotFound,
    StoreError, Trip, TripPhase, as_dict, query_cache, store_message,
)
from forms import (
    AccommodationForm, ActivityForm, GooglePlaceResult, JourneyForm,
    LocationForm, TripForm, TripPhaseForm,
)
from utils.date_time import normalise_time

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        message = store_message(exc)
        logger.warning("%s failed: %s", action, message)
        raise StoreError(message) from exc


def _get_owned(db: Session, model, row_id: str, user_id: str, **filters):
    try:
        query = db.query(model).filter(model.id == row_id, model.user_id == user_id)
        for column, value in filters.items():
            query = query.filter(getattr(model, column) == value)
        row = query.first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(store_message(exc)) from exc
    if row is None:
        raise RowNotFound(f"{model.__name__} {row_id} not found")
    return row


def _check_parent(db: Session, model, row_id: Optional[str], user_id: str, trip_id: str) -> None:
    """A referenced phase or location must belong to the acting user and to the same trip."""
    if row_id:
        _get_owned(db, model, row_id, user_id, trip_id=trip_id)


def _blank_to_none(values: dict, *fields: str) -> dict:
    for name in fields:
        if name in values and isinstance(values[name], str):
            values[name] = values[name].strip() or None
    return values


def _apply(row, values: dict) -> None:
    for key, value in values.items():
        setattr(row, key, value)


def _invalidate_trip(cache: QueryCache, trip_id: str) -> None:
    cache.invalidate(("trip", trip_id))


# ---------------------------------------------------------------------------
# Trips
# ---------------------------------------------------------------------------

def add_trip(db: Session, user_id: str, values: TripForm, cache: QueryCache = query_cache) -> dict:
    fields = _blank_to_none(values.model_dump(), "description", "start_date", "end_date")
    trip = Trip(user_id=user_id, **fields)
    db.add(trip)
    _commit(db, "Add trip")
    db.refresh(trip)
    cache.invalidate(("trips", user_id))
    return as_dict(trip)


def update_trip(db: Session, user_id: str, trip_id: str, values: TripForm,
                cache: QueryCache = query_cache) -> dict:
    trip = _get_owned(db, Trip, trip_id, user_id)
    _apply(trip, _blank_to_none(values.model_dump(exclude_unset=True), "description", "start_date", "end_date"))
    _commit(db, "Update trip")
    db.refresh(trip)
    cache.invalidate(("trips", user_id))
    _invalidate_trip(cache, trip_id)
    return as_dict(trip)


def delete_trip(db: Session, user_id: str, trip_id: str, cache: QueryCache = query_cache) -> None:
    trip = _get_owned(db, Trip, trip_id, user_id)
    db.delete(trip)
    _commit(db, "Delete trip")
    cache.invalidate(("trips", user_id))
    _invalidate_trip(cache, trip_id)


# ---------------------------------------------------------------------------
# Trip phases
# ---------------------------------------------------------------------------

_PHASE_OPTIONAL = ("description", "start_date", "end_date")


def add_trip_phase(db: Session, user_id: str, trip_id: str, values: TripPhaseForm,
                   cache: QueryCache = query_cache) -> dict:
    trip = _get_owned(db, Trip, trip_id, user_id)
    fields = _blank_to_none(values.model_dump(), *_PHASE_OPTIONAL)
    if fields.get("order") is None:
        fields["order"] = len(trip.trip_phases)
    phase = TripPhase(trip_id=trip_id, user_id=user_id, **fields)
    db.add(phase)
    _commit(db, "Add trip phase")
    db.refresh(phase)
    _invalidate_trip(cache, trip_id)
    return as_dict(phase)


def update_trip_phase(db: Session, user_id: str, trip_id: str, phase_id: str, values: TripPhaseForm,
                      cache: QueryCache = query_cache) -> dict:
    phase = _get_owned(db, TripPhase, phase_id, user_id, trip_id=trip_id)
    _apply(phase, _blank_to_none(values.model_dump(exclude_unset=True), *_PHASE_OPTIONAL))
    _commit(db, "Update trip phase")
    db.refresh(phase)
    _invalidate_trip(cache, trip_id)
    return as_dict(phase)


def delete_trip_phase(db: Session, user_id: str, trip_id: str, phase_id: str,
                      cache: QueryCache = query_cache) -> None:
    phase = _get_owned(db, TripPhase, phase_id, user_id, trip_id=trip_id)
    db.delete(phase)
    _commit(db, "Delete trip phase")
    _invalidate_trip(cache, trip_id)


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def _location_fields(values: LocationForm, exclude_unset: bool = False) -> dict:
    fields = _blank_to_none(values.model_dump(exclude_unset=exclude_unset), "region", "notes", "phase_id", "place_id")
    if "phase_id" in fields:
        fields["trip_phase_id"] = fields.pop("phase_id")
    return fields


def add_location(db: Session, user_id: str, trip_id: str, values: LocationForm,
                 cache: QueryCache = query_cache) -> dict:
    _get_owned(db, Trip, trip_id, user_id)
    fields = _location_fields(values)
    _check_parent(db, TripPhase, fields.get("trip_phase_id"), user_id, trip_id)
    location = Location(trip_id=trip_id, user_id=user_id, **fields)
    db.add(location)
    _commit(db, "Add location")
    db.refresh(location)
    _invalidate_trip(cache, trip_id)
    return as_dict(location)


def update_location(db: Session, user_id: str, trip_id: str, location_id: str, values: LocationForm,
                    cache: QueryCache = query_cache) -> dict:
    location = _get_owned(db, Location, location_id, user_id, trip_id=trip_id)
    fields = _location_fields(values, exclude_unset=True)
    _check_parent(db, TripPhase, fields.get("trip_phase_id"), user_id, trip_id)
    _apply(location, fields)
    _commit(db, "Update location")
    db.refresh(location)
    _invalidate_trip(cache, trip_id)
    return as_dict(location)


def delete_location(db: Session, user_id: str, trip_id: str, location_id: str,
                    cache: QueryCache = query_cache) -> None:
    location = _get_owned(db, Location, location_id, user_id, trip_id=trip_id)
    db.delete(location)
    _commit(db, "Delete location")
    _invalidate_trip(cache, trip_id)


# ---------------------------------------------------------------------------
# Accommodations
# ---------------------------------------------------------------------------

_ACCOMMODATION_OPTIONAL = ("check_in", "check_out", "url", "notes", "place_id")


def add_accommodation(db: Session, user_id: str, trip_id: str, location_id: str, values: AccommodationForm,
                      cache: QueryCache = query_cache) -> dict:
    _get_owned(db, Trip, trip_id, user_id)
    _get_owned(db, Location, location_id, user_id, trip_id=trip_id)
    accommodation = Accommodation(
        trip_id=trip_id,
        location_id=location_id,
        user_id=user_id,
        **_blank_to_none(values.model_dump(), *_ACCOMMODATION_OPTIONAL),
    )
    db.add(accommodation)
    _commit(db, "Add accommodation")
    db.refresh(accommodation)
    _invalidate_trip(cache, trip_id)
    return as_dict(accommodation)


def update_accommodation(db: Session, user_id: str, trip_id: str, accommodation_id: str,
                         values: AccommodationForm, cache: QueryCache = query_cache) -> dict:
    accommodation = _get_owned(db, Accommodation, accommodation_id, user_id, trip_id=trip_id)
    _apply(accommodation, _blank_to_none(values.model_dump(exclude_unset=True), *_ACCOMMODATION_OPTIONAL))
    _commit(db, "Update accommodation")
    db.refresh(accommodation)
    _invalidate_trip(cache, trip_id)
    return as_dict(accommodation)


def delete_accommodation(db: Session, user_id: str, trip_id: str, accommodation_id: str,
                         cache: QueryCache = query_cache) -> None:
    accommodation = _get_owned(db, Accommodation, accommodation_id, user_id, trip_id=trip_id)
    db.delete(accommodation)
    _commit(db, "Delete accommodation")
    _invalidate_trip(cache, trip_id)


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------

def _activity_fields(values: ActivityForm, exclude_unset: bool = False) -> dict:
    fields = _blank_to_none(values.model_dump(exclude_unset=exclude_unset), "notes", "place_id")
    for name in ("start_time", "end_time"):
        if name in fields:
            fields[name] = normalise_time(fields[name])
    return fields


def add_activity(db: Session, user_id: str, trip_id: str, location_id: str, values: ActivityForm,
                 cache: QueryCache = query_cache) -> dict:
    _get_owned(db, Trip, trip_id, user_id)
    _get_owned(db, Location, location_id, user_id, trip_id=trip_id)
    activity = Activity(trip_id=trip_id, location_id=location_id, user_id=user_id, **_activity_fields(values))
    db.add(activity)
    _commit(db, "Add activity")
    db.refresh(activity)
    _invalidate_trip(cache, trip_id)
    return as_dict(activity)


def update_activity(db: Session, user_id: str, trip_id: str, activity_id: str, values: ActivityForm,
                    cache: QueryCache = query_cache) -> dict:
    activity = _get_owned(db, Activity, activity_id, user_id, trip_id=trip_id)
    _apply(activity, _activity_fields(values, exclude_unset=True))
    _commit(db, "Update activity")
    db.refresh(activity)
    _invalidate_trip(cache, trip_id)
    return as_dict(activity)


def delete_activity(db: Session, user_id: str, trip_id: str, activity_id: str,
                    cache: QueryCache = query_cache) -> None:
    activity = _get_owned(db, Activity, activity_id, user_id, trip_id=trip_id)
    db.delete(activity)
    _commit(db, "Delete activity")
    _invalidate_trip(cache, trip_id)


# ---------------------------------------------------------------------------
# Journeys
# ---------------------------------------------------------------------------

def _journey_fields(db: Session, user_id: str, trip_id: str, values: JourneyForm) -> dict:
    fields = _blank_to_none(values.to_row(), "provider", "notes", "departure_location_id", "arrival_location_id")
    for name in ("departure_time", "arrival_time"):
        if name in fields:
            fields[name] = normalise_time(fields[name]) if fields[name] else None
    for name in ("departure_location_id", "arrival_location_id"):
        _check_parent(db, Location, fields.get(name), user_id, trip_id)
    return fields


def add_journey(db: Session, user_id: str, trip_id: str, values: JourneyForm,
                cache: QueryCache = query_cache) -> dict:
    _get_owned(db, Trip, trip_id, user_id)
    journey = Journey(trip_id=trip_id, user_id=user_id, **_journey_fields(db, user_id, trip_id, values))
    db.add(journey)
    _commit(db, "Add journey")
    db.refresh(journey)
    _invalidate_trip(cache, trip_id)
    return as_dict(journey)


def update_journey(db: Session, user_id: str, trip_id: str, journey_id: str, values: JourneyForm,
                   cache: QueryCache = query_cache) -> dict:
    journey = _get_owned(db, Journey, journey_id, user_id, trip_id=trip_id)
    _apply(journey, _journey_fields(db, user_id, trip_id, values))
    _commit(db, "Update journey")
    db.refresh(journey)
    _invalidate_trip(cache, trip_id)
    return as_dict(journey)


def delete_journey(db: Session, user_id: str, trip_id: str, journey_id: str,
                   cache: QueryCache = query_cache) -> None:
    journey = _get_owned(db, Journey, journey_id, user_id, trip_id=trip_id)
    db.delete(journey)
    _commit(db, "Delete journey")
    _invalidate_trip(cache, trip_id)


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------

def upsert_place(db: Session, user_id: Optional[str], google_place: GooglePlaceResult,
                 cache: QueryCache = query_cache) -> dict:
    """Cache a Places API record, refreshing the stored copy if we already have it."""
    if not user_id:
        raise StoreError("User must be authenticated to save places")

    fields = {
        "name": google_place.name,
        "lat": google_place.lat,
        "lng": google_place.lng,
        "formatted_address": google_place.formatted_address,
        "place_types": list(google_place.types),
        "rating": google_place.rating or None,
        "price_level": google_place.price_level or None,
        "website": google_place.website or None,
        "phone_number": google_place.formatted_phone_number or None,
        "photos": google_place.photos or None,
        "opening_hours": google_place.opening_hours or None,
        "is_google_place": True,
    }

    try:
        place = db.query(Place).filter(Place.google_place_id == google_place.place_id).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(store_message(exc)) from exc

    if place is None:
        place = Place(google_place_id=google_place.place_id, user_id=user_id, **fields)
        db.add(place)
        action = "Insert place"
    else:
        _apply(place, {**fields, "updated_at": datetime.utcnow()})
        action = "Update place"

    _commit(db, action)
    db.refresh(place)
    cache.invalidate(("place",))
    return as_dict(place)
