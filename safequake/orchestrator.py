"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates one proximity-notification cycle: poll the feed,
gate on the notified marker, evaluate users, dispatch and record.
"""

import logging
from dataclasses import dataclass, field

import requests

from safequake.core.config import Config
from safequake.core.dedup import (
    advance_marker,
    append_posted_id,
    event_key,
    is_already_notified,
    is_already_recorded,
)
from safequake.core.geo import is_within_bounds
from safequake.core.rules import ProximityDecision, lacks_location, make_proximity_decisions
from safequake.core.seismic_event import (
    FeedFormatError,
    SeismicEvent,
    latest_event,
    parse_seismic_events,
)
from safequake.dispatcher import ChannelResult, DispatchResult, Dispatcher
from safequake.shell.firestore_client import FirestoreClient, FirestoreConfig
from safequake.shell.inbox_client import InboxClient
from safequake.shell.ingv_client import INGVClient
from safequake.shell.state_store import FirestoreStateStore, StateStoreError
from safequake.shell.telegram_client import TelegramClient


logger = logging.getLogger(__name__)


@dataclass
class RecordResult:
    """Result of recording an event for one user.

    Attributes:
        user_id: The nearby user
        event_id: The event
        created: True if a new record was written
        skipped: True if the event was already recorded for this user
        error: Error message if failed
    """
    user_id: str
    event_id: str
    created: bool
    skipped: bool = False
    error: str | None = None


@dataclass
class ProcessingResult:
    """Result of one proximity-notification cycle.

    Attributes:
        events_fetched: Events returned by the feed
        latest: The latest event (None if the feed was empty or failed)
        duplicate: True if the latest event was already notified
        users_in_range: Users within the proximity radius
        dispatches: Per-user dispatch outcomes
        broadcast: Subscriber broadcast outcomes
        records: Per-user record outcomes
        errors: Any errors that occurred
    """
    events_fetched: int = 0
    latest: SeismicEvent | None = None
    duplicate: bool = False
    users_in_range: int = 0
    dispatches: list[DispatchResult] = field(default_factory=list)
    broadcast: list[ChannelResult] = field(default_factory=list)
    records: list[RecordResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def alerts_sent(self) -> list[ChannelResult]:
        sent = [r for d in self.dispatches for r in d.sent]
        return sent + [r for r in self.broadcast if r.success]

    @property
    def alerts_failed(self) -> list[ChannelResult]:
        failed = [r for d in self.dispatches for r in d.failed]
        return failed + [r for r in self.broadcast if not r.success]

    @property
    def records_created(self) -> int:
        return sum(1 for r in self.records if r.created)

    @property
    def success(self) -> bool:
        """Returns True if no critical errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the processing result."""
        if self.latest is None:
            return f"Fetched {self.events_fetched} events, none processed"
        if self.duplicate:
            return f"Fetched {self.events_fetched} events, latest {self.latest.id} already notified"
        return (
            f"Fetched {self.events_fetched} events, "
            f"latest {self.latest.id} M{self.latest.magnitude:.1f}, "
            f"{self.users_in_range} users in range, "
            f"{len(self.alerts_sent)} alerts sent, "
            f"{len(self.alerts_failed)} failed, "
            f"{self.records_created} records created"
        )


class Orchestrator:
    """Coordinates seismic event polling and proximity alerting.

    This class wires together:
    - INGV client (fetches seismic events)
    - Core functions (parsing, dedup, distance, advice, formatting)
    - State store (notified marker, posted lists)
    - Firestore client (users, advice catalog, subscribers, records)
    - Dispatcher (browser push, toasts, Telegram)
    """

    def __init__(
        self,
        config: Config,
        ingv_client: INGVClient | None = None,
        firestore_client: FirestoreClient | None = None,
        state_store: FirestoreStateStore | None = None,
        telegram_client: TelegramClient | None = None,
        inbox_client: InboxClient | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            ingv_client: Feed client (created if not provided)
            firestore_client: Firestore client (created if not provided)
            state_store: State store (created if not provided)
            telegram_client: Telegram client (created if not provided)
            inbox_client: Inbox client (created if not provided)
            dispatcher: Dispatcher (created from the clients if not provided)
        """
        self.config = config
        self.ingv_client = ingv_client or INGVClient(base_url=config.feed_url)
        self.firestore_client = firestore_client or FirestoreClient(
            FirestoreConfig(
                database=config.firestore_database,
                collections=config.collections,
            )
        )
        self.state_store = state_store or FirestoreStateStore(
            collection=config.collections.state,
            database=config.firestore_database,
        )
        self.telegram_client = telegram_client or TelegramClient(
            config.telegram_bot_token,
            retry_policy=config.retry,
        )
        self.inbox_client = inbox_client or InboxClient(self.firestore_client)
        self.dispatcher = dispatcher or Dispatcher(
            self.telegram_client,
            self.inbox_client,
            radius_km=config.proximity_radius_km,
        )

    def _fetch_events(self) -> list[SeismicEvent]:
        """Fetch this year's events from the feed.

        Raises:
            requests.RequestException: On transport failure
            FeedFormatError: If the response is not an event collection
        """
        try:
            geojson = self.ingv_client.fetch_year_to_date(
                bounds=self.config.bounds,
                min_magnitude=self.config.min_magnitude,
            )
        except ValueError as e:
            raise FeedFormatError(f"Feed response is not JSON: {e}") from e

        # Pure core functions
        events = parse_seismic_events(geojson)
        in_bounds = [e for e in events if is_within_bounds(e, self.config.bounds)]
        if len(in_bounds) < len(events):
            logger.info("Dropped %d events outside bounds", len(events) - len(in_bounds))
        return in_bounds

    def _record(self, decision: ProximityDecision) -> RecordResult:
        """Persist the event for a nearby user unless already recorded."""
        user_id = decision.user.id
        event = decision.event
        key = event_key(event)

        try:
            posted = self.state_store.get_posted_ids(user_id)
        except StateStoreError as e:
            # The deterministic record id still prevents duplicates
            logger.warning("Posted list unavailable for user %s: %s", user_id, e)
            posted = None

        if posted is not None and is_already_recorded(event, posted):
            logger.info("Event %s already recorded for user %s", key, user_id)
            return RecordResult(user_id=user_id, event_id=key, created=False, skipped=True)

        created = self.firestore_client.record_seismic_event(event, user_id, decision.distance_km)
        if created.error:
            return RecordResult(user_id=user_id, event_id=key, created=False, error=created.error)

        # An unread list is left as stored rather than overwritten
        if posted is not None:
            self.state_store.set_posted_ids(
                user_id,
                append_posted_id(posted, key, self.config.max_posted),
            )

        if created.conflict:
            return RecordResult(user_id=user_id, event_id=key, created=False, skipped=True)

        logger.info(
            "Recorded event %s for user %s at %.2f km",
            key,
            user_id,
            decision.distance_km,
        )
        return RecordResult(user_id=user_id, event_id=key, created=True)

    def process(self) -> ProcessingResult:
        """Run one proximity-notification cycle.

        This is the main entry point that:
        1. Fetches events from the feed and picks the latest
        2. Skips it if it matches the notified marker
        3. Advances the marker (before any dispatch)
        4. Broadcasts to Telegram subscribers
        5. Evaluates every user's distance from the epicenter
        6. Dispatches alerts and records the event for nearby users

        Returns:
            ProcessingResult with details of what happened
        """
        result = ProcessingResult()

        # Step 1: Fetch events
        try:
            events = self._fetch_events()
        except (requests.RequestException, FeedFormatError) as e:
            error_msg = f"Failed to fetch seismic events: {e}"
            logger.error(error_msg)
            result.errors.append(error_msg)
            return result

        result.events_fetched = len(events)
        event = latest_event(events)
        if event is None:
            logger.info("No seismic events found")
            return result

        result.latest = event
        logger.info(
            "Latest event %s: M%.1f %s at %s",
            event.id,
            event.magnitude,
            event.place,
            event.time.isoformat(),
        )

        # Step 2: Deduplication gate
        try:
            marker = self.state_store.get_marker()
        except StateStoreError as e:
            error_msg = f"Failed to read notified marker: {e}"
            logger.error(error_msg)
            result.errors.append(error_msg)
            return result

        if is_already_notified(event, marker):
            logger.info("Event %s already notified", event.id)
            result.duplicate = True
            return result

        # Step 3: Advance marker before dispatch
        if not self.state_store.set_marker(advance_marker(event)):
            error_msg = f"Failed to advance notified marker to {event.id}; skipping dispatch"
            logger.error(error_msg)
            result.errors.append(error_msg)
            return result

        # Step 4: Subscriber broadcast
        if self.config.broadcast_to_subscribers:
            subscribers = self.firestore_client.get_telegram_subscribers()
            result.broadcast = self.dispatcher.broadcast(event, subscribers)

        # Step 5: Distance evaluation (pure core function)
        users = self.firestore_client.get_users()
        for user in users:
            if lacks_location(user):
                logger.info("User %s has no location; skipping", user.id)

        catalog = self.firestore_client.get_advice_catalog()
        decisions = make_proximity_decisions(
            event,
            users,
            catalog,
            self.config.proximity_radius_km,
        )
        result.users_in_range = len(decisions)

        logger.info(
            "%d of %d users within %.0f km of event %s",
            len(decisions),
            len(users),
            self.config.proximity_radius_km,
            event.id,
        )

        # Step 6: Dispatch, then record
        for decision in decisions:
            result.dispatches.append(self.dispatcher.dispatch(decision))

            record = self._record(decision)
            result.records.append(record)
            if record.error:
                result.errors.append(
                    f"Failed to record event {record.event_id} for user {record.user_id}: {record.error}"
                )

        return result
