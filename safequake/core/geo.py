"""Geographic calculations - Pure functions.

This module provides distance and boundary calculations for seismic events.
All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from safequake.core.seismic_event import SeismicEvent

if TYPE_CHECKING:
    from safequake.core.user import Place


# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box.

    Attributes:
        min_latitude: Southern boundary
        max_latitude: Northern boundary
        min_longitude: Western boundary
        max_longitude: Eastern boundary
    """
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within this bounding box."""
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


# National territory monitored by default (Italy and surrounding seas)
ITALY_BOUNDS = BoundingBox(
    min_latitude=35.3,
    max_latitude=47.5,
    min_longitude=6.4,
    max_longitude=18.3,
)


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_to_place(event: SeismicEvent, place: "Place | None") -> float | None:
    """Distance from an event epicenter to a user's registered place.

    Pure function.

    Args:
        event: The seismic event
        place: The user's place (may be None or lack coordinates)

    Returns:
        Distance in kilometers rounded to 2 decimals, or None when the
        place has no usable coordinates
    """
    if place is None or not place.has_coordinates:
        return None

    distance = calculate_distance(
        place.latitude,
        place.longitude,
        event.latitude,
        event.longitude,
    )
    return round(distance, 2)


def is_within_radius(distance_km: float | None, radius_km: float) -> bool:
    """Check whether a computed distance falls inside a radius.

    An undetermined distance (None) is never within radius.

    Pure function.
    """
    if distance_km is None:
        return False
    return distance_km <= radius_km


def is_within_bounds(event: SeismicEvent, bounds: BoundingBox) -> bool:
    """Check if an event epicenter is within a bounding box.

    Pure function.
    """
    return bounds.contains(event.latitude, event.longitude)
