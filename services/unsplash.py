"""
Unsplash cover images for trips.

``fetch_trip_image`` turns a trip's title and description into a short
keyword query and returns the first landscape result. ``track_download``
sends the download ping Unsplash's API guidelines require whenever one of
their images is used.
"""

from __future__ import annotations

import logging
import os
import re
from typing import List, Optional
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

_API_HOST = "api.unsplash.com"
_SEARCH_URL = f"https://{_API_HOST}/search/photos"
MAX_KEYWORDS = 5

STOP_WORDS = {
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "a", "an", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "can", "must", "shall",
}

TRAVEL_WORDS = {
    "trip", "travel", "vacation", "holiday", "journey", "adventure", "visit",
    "explore", "tour", "getaway", "break", "escape", "excursion", "weekend",
    "day", "days",
}

GEOGRAPHIC_WORDS = {
    "mount", "mountain", "lake", "river", "city", "town", "beach", "island",
    "park", "national", "state", "bay", "cape", "valley", "hill", "peak",
    "forest", "coast", "peninsula", "strait", "fjord", "glacier", "desert",
    "canyon", "falls", "waterfall", "spring", "hot", "cold", "grande", "grand",
    "petit", "little", "old", "new", "upper", "lower", "inner", "outer",
    "royal", "saint", "san", "santa", "los", "las", "der", "die", "das", "le",
    "la", "les", "du", "de", "ben", "loch", "glen", "strath", "kyle", "ness",
    "tor", "down", "fell", "moor", "heath", "wick", "by", "thorpe", "ton",
    "ham", "burg", "berg", "feld", "tal", "bad", "sur", "sous", "pont", "port",
    "porto", "puerto", "mare", "mer", "sea", "ocean", "oceano", "playa",
    "praia", "costa", "cote", "sierra", "serra", "monte", "monti", "col",
    "pass", "paso", "via", "strada", "rue", "abbey", "castle", "palazzo",
    "palais", "temple", "shrine", "pagoda", "cathedral", "basilica", "chiesa",
    "kirche", "iglesia", "mezquita", "masjid", "gurdwara", "wat", "vihara",
    "gompa",
}

REGION_WORDS = {
    "north", "northern", "south", "southern", "east", "eastern", "west",
    "western", "central", "middle", "upper", "lower", "inner", "outer",
    "greater", "grand", "new", "old", "ancient", "modern", "alto", "alta",
    "bajo", "baja", "nord", "sud", "est", "ouest", "norte", "sur", "este",
    "oeste", "haut", "haute", "bas", "basse", "ober", "unter", "gross",
    "klein", "grande", "piccolo", "novo", "nova", "velho", "velha", "novy",
    "nove", "stary", "stara", "minami", "kita", "higashi", "nishi", "chuo",
    "shin", "kyu", "maha", "uttar", "dakshin", "purva", "paschim", "madhya",
    "pradesh", "nagar", "abad", "pura", "ganj", "kot", "kand", "stan",
    "istan", "land", "shire", "borough", "county", "state", "province",
    "region", "territory", "district", "prefecture", "oblast", "canton",
    "departement", "arrondissement", "municipality", "commune", "parish",
    "ward", "division", "zone", "area", "sector",
}


class UnsplashError(RuntimeError):
    pass


class InvalidDownloadUrl(UnsplashError):
    """The download link does not point at the Unsplash API."""


def _get_access_key() -> str:
    return os.getenv("UNSPLASH_ACCESS_KEY", "")


def _auth_headers() -> dict:
    return {"Authorization": f"Client-ID {_get_access_key()}"}


def _score(word: str) -> float:
    if word in STOP_WORDS:
        return -1
    if word in TRAVEL_WORDS:
        return 0.5
    score = 3 if len(word) > 4 else 1
    if word in GEOGRAPHIC_WORDS:
        score += 2
    if word in REGION_WORDS:
        score += 1
    return score


def _unique(words: List[str]) -> List[str]:
    seen = set()
    return [w for w in words if not (w in seen or seen.add(w))]


def create_search_query(title: str, description: Optional[str] = None) -> str:
    """Pick up to five distinctive words from the trip text.

    Stop words are dropped, longer and place-like words rank higher, and
    generic travel words only fill leftover slots. Falls back to capitalised
    title words, then to the raw title.
    """
    text = f"{title} {description or ''}".lower()
    words = [re.sub(r"[^\w]", "", w) for w in text.split() if len(w) > 2]
    scored = [(w, _score(w)) for w in words if w]

    ranked = sorted((item for item in scored if item[1] > 0.5), key=lambda item: -item[1])
    top_words = _unique([w for w, _ in ranked])[:MAX_KEYWORDS]
    travel_words = _unique([w for w, s in scored if s == 0.5])

    if len(top_words) < MAX_KEYWORDS and travel_words:
        top_words += travel_words[:MAX_KEYWORDS - len(top_words)]
    if top_words:
        return " ".join(top_words)

    capitalised = [w for w in title.split() if w[:1].isupper() and len(w) > 2][:3]
    if capitalised:
        return " ".join(capitalised)
    return title


def fetch_trip_image(title: str, description: Optional[str] = None) -> Optional[str]:
    """URL of a small landscape photo matching the trip, or None when nothing matches."""
    query = create_search_query(title, description)
    try:
        resp = requests.get(
            _SEARCH_URL,
            params={"query": query, "per_page": 1, "orientation": "landscape"},
            headers=_auth_headers(),
            timeout=10,
        )
    except requests.RequestException as exc:
        raise UnsplashError(f"Unsplash unreachable: {exc}") from exc
    if not resp.ok:
        raise UnsplashError("Failed to fetch image from Unsplash")

    results = resp.json().get("results") or []
    if not results:
        return None
    return results[0]["urls"]["small"]


def track_download(download_url: str) -> None:
    """Ping a photo's download_location. Only https links on the Unsplash API host are followed."""
    parsed = urlparse(download_url or "")
    if parsed.scheme != "https" or parsed.hostname != _API_HOST:
        logger.warning("Refusing download ping to %s", parsed.hostname)
        raise InvalidDownloadUrl("Download URL must point at the Unsplash API")

    try:
        resp = requests.get(download_url, headers=_auth_headers(), timeout=10)
    except requests.RequestException as exc:
        raise UnsplashError(f"Unsplash unreachable: {exc}") from exc
    if not resp.ok:
        raise UnsplashError("Failed to track download")
