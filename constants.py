"""
Enumerations shared by forms, serializers and the options endpoint.
"""

ACTIVITY_TYPES = (
    "sightseeing",
    "food",
    "museum",
    "hike",
    "beach",
    "shopping",
    "travel",
    "relax",
    "event",
    "nightlife",
    "other",
)

ACTIVITY_TYPE_LABELS = {
    "sightseeing": "Sightseeing",
    "food": "Food & Drink",
    "museum": "Museum",
    "hike": "Hiking",
    "beach": "Beach",
    "shopping": "Shopping",
    "travel": "Travel Day",
    "relax": "Relax",
    "event": "Event",
    "nightlife": "Nightlife",
    "other": "Other",
}

ACTIVITY_TYPE_ICONS = {
    "sightseeing": "🗺️",
    "food": "🍽️",
    "museum": "🏛️",
    "hike": "🥾",
    "beach": "🏖️",
    "shopping": "🛍️",
    "travel": "✈️",
    "relax": "🧘",
    "event": "🎉",
    "nightlife": "🌃",
    "other": "❓",
}

JOURNEY_MODES = (
    "flight",
    "train",
    "bus",
    "car",
    "boat",
    "walk",
    "bike",
    "metro",
    "ferry",
    "taxi",
    "other",
)

JOURNEY_MODE_LABELS = {
    "flight": "Flight",
    "train": "Train",
    "bus": "Bus",
    "car": "Car",
    "boat": "Boat",
    "walk": "Walk",
    "bike": "Bike",
    "metro": "Metro/Subway",
    "ferry": "Ferry",
    "taxi": "Taxi/Rideshare",
    "other": "Other",
}

JOURNEY_MODE_ICONS = {
    "flight": "✈️",
    "train": "🚆",
    "bus": "🚌",
    "car": "🚗",
    "boat": "🛥️",
    "walk": "🚶",
    "bike": "🚴",
    "metro": "🚇",
    "ferry": "⛴️",
    "taxi": "🚕",
    "other": "❓",
}

UNKNOWN_ICON = "❓"


def get_activity_type_label(activity_type: str) -> str:
    return ACTIVITY_TYPE_LABELS.get(activity_type, "Other")


def get_activity_type_icon(activity_type: str) -> str:
    return ACTIVITY_TYPE_ICONS.get(activity_type, UNKNOWN_ICON)


def get_journey_mode_label(mode: str) -> str:
    return JOURNEY_MODE_LABELS.get(mode, "Other")


def get_journey_mode_icon(mode: str) -> str:
    return JOURNEY_MODE_ICONS.get(mode, UNKNOWN_ICON)


def options() -> dict:
    """Dropdown options for the activity and journey forms."""
    return {
        "activity_types": [
            {"value": t, "label": get_activity_type_label(t), "icon": get_activity_type_icon(t)}
            for t in ACTIVITY_TYPES
        ],
        "journey_modes": [
            {"value": m, "label": get_journey_mode_label(m), "icon": get_journey_mode_icon(m)}
            for m in JOURNEY_MODES
        ],
    }
