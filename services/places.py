"""
Google Places (New) text search.

The API key stays on the server: the app exposes ``POST /api/places/search``
and forwards the query here. Results are normalised to the flat record the
place picker and ``mutations.upsert_place`` work with.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

import requests

logger = logging.getLogger(__name__)

_SEARCH_TEXT_URL = "https://places.googleapis.com/v1/places:searchText"
_FIELD_MASK = ",".join(
    f"places.{name}"
    for name in (
        "id", "displayName", "formattedAddress", "location", "types", "rating",
        "priceLevel", "regularOpeningHours", "photos", "websiteUri", "nationalPhoneNumber",
    )
)
MAX_RESULTS = 10

# The v1 API reports price level as an enum name
_PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}


class PlacesConfigError(RuntimeError):
    """No API key is configured."""


class PlacesApiError(RuntimeError):
    """The Places API answered with an error or could not be reached."""


def _get_places_key() -> str:
    """Read the API key lazily so that dotenv has loaded by the time we need it."""
    return os.getenv("GOOGLE_MAPS_API_KEY", "")


def is_valid_place(place: Any) -> bool:
    return isinstance(place, dict) and isinstance(place.get("id"), str)


def _price_level(value):
    if isinstance(value, str):
        return _PRICE_LEVELS.get(value)
    return value


def transform_place(place: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten one Places API result into our place record."""
    location = place.get("location") or {}
    return {
        "place_id": place["id"],
        "name": (place.get("displayName") or {}).get("text", ""),
        "formatted_address": place.get("formattedAddress", ""),
        "lat": location.get("latitude") or 0,
        "lng": location.get("longitude") or 0,
        "types": place.get("types") or [],
        "rating": place.get("rating"),
        "price_level": _price_level(place.get("priceLevel")),
        "opening_hours": place.get("regularOpeningHours"),
        "photos": place.get("photos"),
        "website": place.get("websiteUri"),
        "formatted_phone_number": place.get("nationalPhoneNumber"),
    }


def search_places(query: str, max_results: int = MAX_RESULTS) -> List[Dict[str, Any]]:
    """Run a text search and return normalised place records.

    Raises PlacesConfigError without an API key and PlacesApiError when the
    upstream call fails.
    """
    api_key = _get_places_key()
    if not api_key:
        raise PlacesConfigError("Google Places API key not found")

    try:
        resp = requests.post(
            _SEARCH_TEXT_URL,
            json={"textQuery": query, "maxResultCount": max_results},
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": api_key,
                "X-Goog-FieldMask": _FIELD_MASK,
            },
            timeout=10,
        )
    except requests.RequestException as exc:
        raise PlacesApiError(f"Places API unreachable: {exc}") from exc

    if not resp.ok:
        logger.error("Places API error: %s", resp.text)
        raise PlacesApiError(f"Places API error: {resp.status_code}")

    data = resp.json()
    return [transform_place(p) for p in data.get("places") or [] if is_valid_place(p)]
