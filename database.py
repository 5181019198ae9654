"""
Relational store for trips - SQLAlchemy models, sessions and the query cache.
"""
import logging
import os
import sqlite3
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Generator, Hashable, Tuple

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text,
    create_engine, event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./trip_planner.db")

Base = declarative_base()


def generate_id():
    return str(uuid.uuid4())[:8]


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """A read or write against the store failed; ``str()`` is the store's message."""


class RowNotFound(StoreError):
    """The row does not exist or is not visible to the acting user."""


def store_message(exc: Exception) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    trips = relationship("Trip", back_populates="user", cascade="all, delete-orphan")


class Trip(Base):
    __tablename__ = "trips"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(String, nullable=True)  # YYYY-MM-DD
    end_date = Column(String, nullable=True)  # YYYY-MM-DD
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="trips")
    trip_phases = relationship(
        "TripPhase", back_populates="trip", cascade="all, delete-orphan",
        order_by="(TripPhase.order, TripPhase.created_at)",
    )
    locations = relationship(
        "Location", back_populates="trip", cascade="all, delete-orphan",
        order_by="Location.created_at",
    )
    journeys = relationship(
        "Journey", back_populates="trip", cascade="all, delete-orphan",
        order_by="Journey.created_at",
    )


class TripPhase(Base):
    __tablename__ = "trip_phases"

    id = Column(String, primary_key=True, default=generate_id)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(String, nullable=True)
    end_date = Column(String, nullable=True)
    order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    trip = relationship("Trip", back_populates="trip_phases")
    # no delete cascade: removing a phase leaves its locations unassigned
    locations = relationship("Location", back_populates="trip_phase", order_by="Location.created_at")


class Place(Base):
    __tablename__ = "places"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    google_place_id = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, nullable=False)
    formatted_address = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    place_types = Column(JSON, default=list)
    rating = Column(Float, nullable=True)
    price_level = Column(Integer, nullable=True)
    website = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    photos = Column(JSON, nullable=True)
    opening_hours = Column(JSON, nullable=True)
    is_google_place = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class Location(Base):
    __tablename__ = "locations"

    id = Column(String, primary_key=True, default=generate_id)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    trip_phase_id = Column(String, ForeignKey("trip_phases.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    region = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    place_id = Column(String, ForeignKey("places.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    trip = relationship("Trip", back_populates="locations")
    trip_phase = relationship("TripPhase", back_populates="locations")
    place = relationship("Place")
    accommodations = relationship(
        "Accommodation", back_populates="location", cascade="all, delete-orphan",
        order_by="Accommodation.check_in",
    )
    activities = relationship(
        "Activity", back_populates="location", cascade="all, delete-orphan",
        order_by="(Activity.date, Activity.start_time)",
    )


class Accommodation(Base):
    __tablename__ = "accommodations"

    id = Column(String, primary_key=True, default=generate_id)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(String, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    check_in = Column(String, nullable=True)  # YYYY-MM-DD
    check_out = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    url = Column(String, nullable=True)
    place_id = Column(String, ForeignKey("places.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    location = relationship("Location", back_populates="accommodations")
    place = relationship("Place")


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String, primary_key=True, default=generate_id)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(String, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    date = Column(String, nullable=False)  # YYYY-MM-DD
    start_time = Column(String, nullable=True)  # HH:MM:SS
    end_time = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    activity_type = Column(String, nullable=False, default="other")
    place_id = Column(String, ForeignKey("places.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    location = relationship("Location", back_populates="activities")
    place = relationship("Place")


class Journey(Base):
    __tablename__ = "journeys"

    id = Column(String, primary_key=True, default=generate_id)
    trip_id = Column(String, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # null departure = leg into the trip, null arrival = leg out of it
    departure_location_id = Column(String, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    arrival_location_id = Column(String, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    mode = Column(String, nullable=False)
    provider = Column(String, nullable=True)
    departure_time = Column(String, nullable=True)  # ISO datetime
    arrival_time = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    trip = relationship("Trip", back_populates="journeys")
    departure_location = relationship("Location", foreign_keys=[departure_location_id])
    arrival_location = relationship("Location", foreign_keys=[arrival_location_id])


def as_dict(row) -> Dict[str, Any]:
    """Column values of a model instance, datetimes as ISO strings."""
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        data[column.name] = value.isoformat() if isinstance(value, datetime) else value
    return data


# ---------------------------------------------------------------------------
# Query cache
# ---------------------------------------------------------------------------

CacheKey = Tuple[Hashable, ...]


class QueryCache:
    """Server-state cache keyed by tuples such as ``("trip", trip_id)``.

    ``invalidate`` drops every key that starts with the given prefix, so
    ``("place",)`` clears all cached places. Each key also carries a
    generation that ``invalidate`` bumps; a ``fetch`` whose load overlapped
    an invalidation returns its result without storing it.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}
        self._generations: Dict[CacheKey, int] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey):
        with self._lock:
            return self._entries.get(key)

    def set(self, key: CacheKey, value) -> None:
        with self._lock:
            self._entries[key] = value

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def fetch(self, key: CacheKey, loader: Callable[[], Any]):
        """Return the cached value for ``key``, loading and storing it on a miss."""
        with self._lock:
            if key in self._entries:
                return self._entries[key]
            generation = self._generations.setdefault(key, 0)
        value = loader()
        with self._lock:
            if self._generations.get(key) == generation:
                self._entries[key] = value
            else:
                logger.debug("Discarded load of %s invalidated mid-flight", key)
        return value

    def invalidate(self, prefix: CacheKey) -> int:
        prefix = tuple(prefix)
        with self._lock:
            stale = [key for key in self._entries if key[:len(prefix)] == prefix]
            for key in stale:
                del self._entries[key]
            for key in self._generations:
                if key[:len(prefix)] == prefix:
                    self._generations[key] += 1
        if stale:
            logger.debug("Invalidated %d cached queries for %s", len(stale), prefix)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for key in self._generations:
                self._generations[key] += 1


query_cache = QueryCache()


# ---------------------------------------------------------------------------
# Engine / sessions
# ---------------------------------------------------------------------------

def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Create any missing tables."""
    bind = bind or engine
    try:
        Base.metadata.create_all(bind=bind)
    except SQLAlchemyError as exc:
        logger.error("Database initialisation failed: %s", exc)
        raise
    return bind


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
