"""Seismic event data models and parsing - Pure functions.

This module turns FDSN GeoJSON (INGV event service) into typed SeismicEvent
objects. Malformed features are dropped; a malformed document raises
FeedFormatError so the caller can discard the whole poll.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


class FeedFormatError(ValueError):
    """Raised when a feed response does not have the GeoJSON shape we expect."""


@dataclass(frozen=True)
class SeismicEvent:
    """Immutable seismic event as published by the feed.

    Attributes:
        id: Feed event ID (INGV ``eventId``, or the feature id)
        magnitude: Event magnitude
        mag_type: Magnitude type code (e.g. 'ML', 'Mw', 'Md')
        place: Free-text location description
        time: Origin time (UTC)
        latitude: Epicenter latitude
        longitude: Epicenter longitude
        depth_km: Hypocenter depth in kilometers
        author: Reporting authority
    """
    id: str
    magnitude: float
    mag_type: str
    place: str
    time: datetime
    latitude: float
    longitude: float
    depth_km: float
    author: str = ""

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


def _parse_time(value: Any) -> datetime | None:
    """Parse a feed timestamp.

    INGV publishes ISO-8601 strings without offset (UTC). Numeric values are
    treated as milliseconds since epoch, the USGS convention.
    """
    if value is None:
        return None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    return None


def parse_seismic_event(feature: dict[str, Any]) -> SeismicEvent | None:
    """Parse a single GeoJSON feature into a SeismicEvent.

    Pure function: takes raw dict, returns typed SeismicEvent or None if invalid.

    Args:
        feature: GeoJSON feature dict from the feed

    Returns:
        SeismicEvent or None if parsing fails
    """
    try:
        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 3:
            return None

        event_time = _parse_time(props.get("time"))
        if event_time is None:
            return None

        magnitude = props.get("mag")
        if magnitude is None:
            return None

        event_id = props.get("eventId")
        if event_id is None:
            event_id = feature.get("id")
        if event_id is None or str(event_id) == "":
            return None

        return SeismicEvent(
            id=str(event_id),
            magnitude=float(magnitude),
            mag_type=props.get("magType") or "ML",
            place=props.get("place") or "Unknown location",
            time=event_time,
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(coords[2]),
            author=props.get("author") or "",
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def parse_seismic_events(geojson: Any) -> list[SeismicEvent]:
    """Parse a GeoJSON FeatureCollection into SeismicEvents.

    Pure function: drops invalid features, returns valid events.

    Args:
        geojson: Full GeoJSON FeatureCollection from the feed

    Returns:
        List of SeismicEvent objects, sorted by time (newest first)

    Raises:
        FeedFormatError: If the document has no ``features`` list
    """
    if not isinstance(geojson, dict):
        raise FeedFormatError(f"Expected a JSON object, got {type(geojson).__name__}")

    features = geojson.get("features")
    if not isinstance(features, list):
        raise FeedFormatError("Feed response has no 'features' list")

    events = []
    for feature in features:
        if not isinstance(feature, dict):
            continue
        event = parse_seismic_event(feature)
        if event is not None:
            events.append(event)

    return sorted(events, key=lambda e: e.time, reverse=True)


def latest_event(events: list[SeismicEvent]) -> SeismicEvent | None:
    """Pick the most recent event, or None for an empty list.

    Pure function.
    """
    if not events:
        return None
    return max(events, key=lambda e: e.time)


def event_to_snapshot(event: SeismicEvent) -> dict[str, Any]:
    """Convert a SeismicEvent to a JSON-serializable dict.

    Pure function. Used for the notified marker and API responses.
    """
    return {
        "id": event.id,
        "magnitude": event.magnitude,
        "mag_type": event.mag_type,
        "place": event.place,
        "time": event.time.isoformat(),
        "latitude": event.latitude,
        "longitude": event.longitude,
        "depth_km": event.depth_km,
        "author": event.author,
    }


def record_document_id(user_id: str, event_id: str) -> str:
    """Document id of the record for one (user, event) pair."""
    return f"{user_id}_{event_id}"


def build_event_record(
    event: SeismicEvent,
    user_id: str,
    distance_km: float,
) -> dict[str, Any]:
    """Build the persisted record of an event close to a user.

    Pure function.

    Args:
        event: The seismic event
        user_id: Id of the nearby user
        distance_km: Distance from the user's place

    Returns:
        Document fields for the seismic events collection
    """
    return {
        "eventId": event.id,
        "time": event.time,
        "magType": event.mag_type,
        "magnitude": event.magnitude,
        "geometry": [{
            "latitude": event.latitude,
            "longitude": event.longitude,
            "depth": event.depth_km,
        }],
        "place": event.place,
        "proximity": distance_km,
        "user": user_id,
    }
