"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Seismic feed parsing
- Geo/distance calculations
- Deduplication logic
- Magnitude-to-advice mapping
- Channel rule evaluation
- Message formatting

All functions here are deterministic and have no I/O.
"""

from safequake.core.seismic_event import SeismicEvent, parse_seismic_events, latest_event
from safequake.core.geo import calculate_distance, distance_to_place, is_within_radius
from safequake.core.dedup import NotifiedMarker, event_key, is_already_notified
from safequake.core.advice import Advice, select_advice, order_catalog
from safequake.core.rules import ProximityDecision, make_proximity_decisions
from safequake.core.user import User, parse_user

__all__ = [
    # Seismic events
    "SeismicEvent",
    "parse_seismic_events",
    "latest_event",
    # Geo
    "calculate_distance",
    "distance_to_place",
    "is_within_radius",
    # Dedup
    "NotifiedMarker",
    "event_key",
    "is_already_notified",
    # Advice
    "Advice",
    "select_advice",
    "order_catalog",
    # Rules
    "ProximityDecision",
    "make_proximity_decisions",
    # Users
    "User",
    "parse_user",
]
