"""FastAPI backend for the trip planner"""
import os
import logging
from contextlib import asynccontextmanager

# Load .env before anything else
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Depends, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

import mutations
import queries
from auth import (
    SIGNED_IN, SIGNED_OUT, USER_UPDATED, auth_channel, get_current_user,
    hash_password, issue_token, user_payload, verify_password,
)
from constants import options
from database import RowNotFound, StoreError, User, get_db, init_db, query_cache
from forms import (
    AccommodationForm, AccountUpdate, ActivityForm, GooglePlaceResult, JourneyForm,
    LocationForm, PlaceSearchRequest, TrackDownloadRequest, TripForm, TripPhaseForm,
    UserCreate, UserLogin,
)
from services import places as places_api
from services import unsplash
from utils.grouping import group_activities_by_date
from utils.journeys import build_phase_timeline
from utils.map_markers import generate_map_markers, marker_payload
from utils.trip_lists import TRIP_FILTERS, filter_trips, sort_trips
from utils.users import get_user_display_name, get_user_initials

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Trip Planner API",
    description="Trips, phases, locations, stays, activities and journeys",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Store errors become the message the client shows in its toast
@app.exception_handler(RowNotFound)
async def row_not_found_handler(request, exc: RowNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request, exc: StoreError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _on_auth_state_change(event: str, user: Optional[dict]):
    if event == SIGNED_OUT and user:
        query_cache.invalidate(("trips", user["id"]))


auth_channel.on_auth_state_change(_on_auth_state_change)


def _account(user: User) -> dict:
    payload = user_payload(user)
    return {
        **payload,
        "display_name": get_user_display_name(payload),
        "initials": get_user_initials(payload),
    }


def _session(user: User) -> dict:
    return {
        "access_token": issue_token(user),
        "token_type": "bearer",
        "user": _account(user),
    }


# Auth endpoints
@app.post("/auth/register", status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db)):
    existing = db.query(User).filter(User.email == body.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    db_user = User(
        email=body.email,
        full_name=body.full_name,
        password_hash=hash_password(body.password),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    auth_channel.publish(SIGNED_IN, user_payload(db_user))
    return _session(db_user)


@app.post("/auth/login")
def login(body: UserLogin, db: Session = Depends(get_db)):
    db_user = db.query(User).filter(User.email == body.email).first()
    if not db_user or not verify_password(body.password, db_user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    auth_channel.publish(SIGNED_IN, user_payload(db_user))
    return _session(db_user)


@app.post("/auth/logout")
def logout(user: User = Depends(get_current_user)):
    auth_channel.publish(SIGNED_OUT, user_payload(user))
    return {"message": "Signed out"}


@app.get("/auth/me")
def get_account(user: User = Depends(get_current_user)):
    return _account(user)


@app.patch("/auth/me")
def update_account(body: AccountUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user.full_name = (body.full_name or "").strip() or None
    db.commit()
    db.refresh(user)
    auth_channel.publish(USER_UPDATED, user_payload(user))
    return _account(user)


# Trip endpoints
@app.get("/trips")
def list_trips(
    trip_filter: str = Query("all", alias="filter", description="all, upcoming or past"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if trip_filter not in TRIP_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown filter '{trip_filter}'")
    trips = queries.get_trips(db, user.id)
    return sort_trips(filter_trips(trips, trip_filter))


@app.post("/trips", status_code=status.HTTP_201_CREATED)
def create_trip(body: TripForm, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    trip = mutations.add_trip(db, user.id, body)
    return {"trip": trip, "message": "Trip added successfully!"}


@app.get("/trips/{trip_id}")
def get_trip(trip_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return queries.get_trip_detail(db, trip_id, user.id)


@app.put("/trips/{trip_id}")
def update_trip(trip_id: str, body: TripForm, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    trip = mutations.update_trip(db, user.id, trip_id, body)
    return {"trip": trip, "message": "Trip updated successfully!"}


@app.delete("/trips/{trip_id}")
def delete_trip(trip_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    mutations.delete_trip(db, user.id, trip_id)
    return {"message": "Trip deleted successfully"}


@app.get("/trips/{trip_id}/markers")
def get_trip_markers(trip_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    trip = queries.get_trip_detail(db, trip_id, user.id)
    return [marker_payload(m, trip) for m in generate_map_markers(trip)]


@app.get("/trips/{trip_id}/activities")
def get_trip_activities(trip_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """All of a trip's activities bucketed by day."""
    trip = queries.get_trip_detail(db, trip_id, user.id)
    locations = [loc for phase in trip["trip_phases"] for loc in phase["locations"]]
    locations += trip["unassigned_locations"]
    activities = [
        {**activity, "location_name": location["name"]}
        for location in locations
        for activity in location["activities"]
    ]
    grouped = group_activities_by_date(activities)
    return [{"date": day, "activities": grouped[day]} for day in sorted(grouped)]


@app.get("/trips/{trip_id}/timeline")
def get_trip_timeline(trip_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    trip = queries.get_trip_detail(db, trip_id, user.id)
    return build_phase_timeline(trip)


# Phase endpoints
@app.post("/trips/{trip_id}/phases", status_code=status.HTTP_201_CREATED)
def create_phase(trip_id: str, body: TripPhaseForm, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.add_trip_phase(db, user.id, trip_id, body)


@app.put("/trips/{trip_id}/phases/{phase_id}")
def update_phase(trip_id: str, phase_id: str, body: TripPhaseForm,
                 user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.update_trip_phase(db, user.id, trip_id, phase_id, body)


@app.delete("/trips/{trip_id}/phases/{phase_id}")
def delete_phase(trip_id: str, phase_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    mutations.delete_trip_phase(db, user.id, trip_id, phase_id)
    return {"message": "Phase deleted"}


# Location endpoints
@app.post("/trips/{trip_id}/locations", status_code=status.HTTP_201_CREATED)
def create_location(trip_id: str, body: LocationForm, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.add_location(db, user.id, trip_id, body)


@app.put("/trips/{trip_id}/locations/{location_id}")
def update_location(trip_id: str, location_id: str, body: LocationForm,
                    user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.update_location(db, user.id, trip_id, location_id, body)


@app.delete("/trips/{trip_id}/locations/{location_id}")
def delete_location(trip_id: str, location_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    mutations.delete_location(db, user.id, trip_id, location_id)
    return {"message": "Location deleted"}


# Accommodation endpoints
@app.post("/trips/{trip_id}/locations/{location_id}/accommodations", status_code=status.HTTP_201_CREATED)
def create_accommodation(trip_id: str, location_id: str, body: AccommodationForm,
                         user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.add_accommodation(db, user.id, trip_id, location_id, body)


@app.put("/trips/{trip_id}/accommodations/{accommodation_id}")
def update_accommodation(trip_id: str, accommodation_id: str, body: AccommodationForm,
                         user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.update_accommodation(db, user.id, trip_id, accommodation_id, body)


@app.delete("/trips/{trip_id}/accommodations/{accommodation_id}")
def delete_accommodation(trip_id: str, accommodation_id: str,
                         user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    mutations.delete_accommodation(db, user.id, trip_id, accommodation_id)
    return {"message": "Accommodation deleted"}


# Activity endpoints
@app.post("/trips/{trip_id}/locations/{location_id}/activities", status_code=status.HTTP_201_CREATED)
def create_activity(trip_id: str, location_id: str, body: ActivityForm,
                    user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.add_activity(db, user.id, trip_id, location_id, body)


@app.put("/trips/{trip_id}/activities/{activity_id}")
def update_activity(trip_id: str, activity_id: str, body: ActivityForm,
                    user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.update_activity(db, user.id, trip_id, activity_id, body)


@app.delete("/trips/{trip_id}/activities/{activity_id}")
def delete_activity(trip_id: str, activity_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    mutations.delete_activity(db, user.id, trip_id, activity_id)
    return {"message": "Activity deleted"}


# Journey endpoints
@app.post("/trips/{trip_id}/journeys", status_code=status.HTTP_201_CREATED)
def create_journey(trip_id: str, body: JourneyForm, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.add_journey(db, user.id, trip_id, body)


@app.put("/trips/{trip_id}/journeys/{journey_id}")
def update_journey(trip_id: str, journey_id: str, body: JourneyForm,
                   user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return mutations.update_journey(db, user.id, trip_id, journey_id, body)


@app.delete("/trips/{trip_id}/journeys/{journey_id}")
def delete_journey(trip_id: str, journey_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    mutations.delete_journey(db, user.id, trip_id, journey_id)
    return {"message": "Journey deleted"}


# Places
@app.post("/places")
def save_place(body: GooglePlaceResult, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Store a picked search result so locations and activities can link to it."""
    return mutations.upsert_place(db, user.id, body)


@app.get("/places/{place_id}")
def get_place(place_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    place = queries.get_place_detail(db, place_id)
    if place is None:
        raise HTTPException(status_code=404, detail="Place not found")
    return place


@app.post("/api/places/search")
def search_places(body: PlaceSearchRequest):
    if not body.query:
        raise HTTPException(status_code=400, detail="Query is required")
    try:
        results = places_api.search_places(body.query)
    except places_api.PlacesConfigError as e:
        logger.error("%s", e)
        raise HTTPException(status_code=500, detail="Server configuration error")
    except places_api.PlacesApiError as e:
        logger.error("Error searching places: %s", e)
        raise HTTPException(status_code=500, detail="Failed to search places")
    return {"places": results}


@app.post("/api/track-download")
def track_download(body: TrackDownloadRequest):
    if not body.downloadUrl:
        raise HTTPException(status_code=400, detail="Download URL is required")
    try:
        unsplash.track_download(body.downloadUrl)
    except unsplash.InvalidDownloadUrl:
        raise HTTPException(status_code=400, detail="Invalid download URL")
    except unsplash.UnsplashError as e:
        logger.error("Error tracking download: %s", e)
        raise HTTPException(status_code=500, detail="Failed to track download")
    return {"success": True}


@app.get("/api/trip-image")
def trip_image(title: Optional[str] = None, description: Optional[str] = None):
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        image_url = unsplash.fetch_trip_image(title, description)
    except unsplash.UnsplashError as e:
        logger.error("Error fetching trip image: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch image")
    return {"imageUrl": image_url}


@app.get("/meta/options")
def get_options():
    return options()


# Health check
@app.get("/health")
def health_check():
    return {
        "status": "ok",
        "version": VERSION,
        "places_search": bool(os.getenv("GOOGLE_MAPS_API_KEY")),
        "trip_images": bool(os.getenv("UNSPLASH_ACCESS_KEY")),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
