"""Deduplication logic - Pure functions.

Two gates live here:
- the notified marker, which suppresses repeat notification of the same
  latest event across polls;
- the per-user posted list, which suppresses recording the same event
  twice for one user.

Persistence of both is handled by the shell (state store). This module
only contains the pure logic.
"""

from dataclasses import dataclass, field
from typing import Any

from safequake.core.seismic_event import SeismicEvent, event_to_snapshot


# Posted-event ids kept per user
DEFAULT_MAX_POSTED = 200


@dataclass(frozen=True)
class NotifiedMarker:
    """The most recently processed event.

    Attributes:
        event_key: Identity key of the event (see event_key)
        snapshot: JSON-serializable copy of the event
    """
    event_key: str
    snapshot: dict[str, Any] = field(default_factory=dict)


def composite_key(event: SeismicEvent) -> str:
    """Identity built from (time, place, magnitude).

    Pure function.
    """
    return f"{event.time.isoformat()}-{event.place}-{event.magnitude}"


def event_key(event: SeismicEvent) -> str:
    """Identity key of an event: the feed id, else the composite key.

    Pure function.
    """
    if event.id:
        return event.id
    return composite_key(event)


def is_already_notified(event: SeismicEvent, marker: NotifiedMarker | None) -> bool:
    """Check whether an event matches the stored marker.

    Pure function.

    Args:
        event: Candidate event
        marker: Stored marker (None if nothing was notified yet)

    Returns:
        True if the event was already processed
    """
    if marker is None:
        return False
    return marker.event_key == event_key(event)


def advance_marker(event: SeismicEvent) -> NotifiedMarker:
    """Build the marker that records ``event`` as processed.

    Pure function.
    """
    return NotifiedMarker(
        event_key=event_key(event),
        snapshot=event_to_snapshot(event),
    )


def is_already_recorded(event: SeismicEvent, posted_ids: set[str] | list[str]) -> bool:
    """Check whether an event is in a user's posted list.

    Pure function.
    """
    return event_key(event) in set(posted_ids)


def append_posted_id(
    posted_ids: list[str],
    event_id: str,
    max_stored: int = DEFAULT_MAX_POSTED,
) -> list[str]:
    """Return a new posted list with ``event_id`` appended.

    Pure function. Duplicates are not appended. Once the list grows past
    ``max_stored`` the oldest ids are dropped.

    Args:
        posted_ids: Current posted ids, oldest first
        event_id: Id to add
        max_stored: Maximum ids to keep

    Returns:
        New list of ids, oldest first
    """
    result = list(posted_ids)
    if event_id not in result:
        result.append(event_id)

    if max_stored > 0 and len(result) > max_stored:
        result = result[-max_stored:]

    return result
