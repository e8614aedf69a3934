"""Alert rule evaluation - Pure functions.

This module decides, for a new seismic event, which users are close enough
to be alerted and which channels each of them gets. All functions are pure
with no side effects.
"""

from dataclasses import dataclass

from safequake.core.advice import Advice, AdviceSelection, select_advice
from safequake.core.geo import distance_to_place, is_within_radius
from safequake.core.seismic_event import SeismicEvent
from safequake.core.user import User


# Default alert radius around a user's place
DEFAULT_RADIUS_KM = 100.0


@dataclass(frozen=True)
class ChannelPlan:
    """Which channels a user gets for one alert.

    Attributes:
        browser: Attempt the browser channel (push enabled)
        browser_permitted: Browser permission granted; if False the browser
            attempt is replaced by a toast explaining the missing permission
        toast: Show the localised event toast
        disabled_notice: Show the "notifications disabled" toast instead
        telegram: Send Telegram messages
    """
    browser: bool
    browser_permitted: bool
    toast: bool
    disabled_notice: bool
    telegram: bool

    @property
    def channel_count(self) -> int:
        return sum((self.browser, self.toast, self.disabled_notice, self.telegram))


@dataclass(frozen=True)
class ProximityDecision:
    """Result of evaluating one user against a new event.

    Attributes:
        user: The user to alert
        event: The event
        distance_km: Distance from the user's place (2 decimals)
        advice: Advice selected for the event magnitude, if any
        channels: Channels to use
    """
    user: User
    event: SeismicEvent
    distance_km: float
    advice: AdviceSelection | None
    channels: ChannelPlan


def plan_channels(user: User) -> ChannelPlan:
    """Work out the channels a user's preferences enable.

    Pure function.
    """
    prefs = user.preferences
    if prefs is None:
        return ChannelPlan(
            browser=False,
            browser_permitted=False,
            toast=False,
            disabled_notice=False,
            telegram=False,
        )

    return ChannelPlan(
        browser=prefs.push,
        browser_permitted=prefs.push and user.push_granted,
        toast=prefs.push,
        disabled_notice=not prefs.push,
        telegram=prefs.telegram_enabled,
    )


def lacks_location(user: User) -> bool:
    """True if the user has no place or the place has no coordinates."""
    place = user.place
    return place is None or not place.has_coordinates


def evaluate_user(
    event: SeismicEvent,
    user: User,
    catalog: list[Advice],
    radius_km: float = DEFAULT_RADIUS_KM,
) -> ProximityDecision | None:
    """Evaluate whether a user should be alerted about an event.

    Pure function.

    Args:
        event: New seismic event
        user: Candidate user
        catalog: Advice catalog ordered by band
        radius_km: Alert radius

    Returns:
        ProximityDecision, or None if the user is out of range, has no
        location, or has no notification preferences
    """
    if user.preferences is None:
        return None

    distance = distance_to_place(event, user.place)
    if not is_within_radius(distance, radius_km):
        return None

    return ProximityDecision(
        user=user,
        event=event,
        distance_km=distance,
        advice=select_advice(event.magnitude, catalog),
        channels=plan_channels(user),
    )


def make_proximity_decisions(
    event: SeismicEvent,
    users: list[User],
    catalog: list[Advice],
    radius_km: float = DEFAULT_RADIUS_KM,
) -> list[ProximityDecision]:
    """Evaluate all users against an event.

    Pure function.

    Returns:
        Decisions for users within ``radius_km``, nearest first
    """
    decisions = []
    for user in users:
        decision = evaluate_user(event, user, catalog, radius_km)
        if decision is not None:
            decisions.append(decision)

    return sorted(decisions, key=lambda d: d.distance_km)
