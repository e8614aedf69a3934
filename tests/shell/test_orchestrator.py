"""Tests for the Orchestrator module.

Tests the coordination between functional core and imperative shell.
Uses mocks for shell components to test orchestration logic.
"""

from unittest.mock import Mock

import pytest
import requests

from safequake.core.advice import Advice
from safequake.core.config import Config
from safequake.core.user import NotificationPreferences, Place, User
from safequake.dispatcher import Dispatcher
from safequake.orchestrator import Orchestrator, ProcessingResult
from safequake.shell.firestore_client import CreateResult
from safequake.shell.inbox_client import InboxResponse
from safequake.shell.state_store import StateStoreError
from safequake.shell.telegram_client import TelegramResponse


SAMPLE_GEOJSON = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {
                "eventId": 38374800,
                "time": "2024-05-20T08:00:00",
                "mag": 2.0,
                "magType": "ML",
                "place": "Older event",
            },
            "geometry": {"type": "Point", "coordinates": [13.0, 42.0, 8.0]},
        },
        {
            "type": "Feature",
            "properties": {
                "eventId": 38374841,
                "time": "2024-05-20T10:15:30",
                "mag": 4.5,
                "magType": "ML",
                "place": "3 km SE Caserta (CE)",
                "author": "SURVEY-INGV",
            },
            "geometry": {"type": "Point", "coordinates": [14.0, 41.0, 10.0]},
        },
    ],
}


class FakeStateStore:
    """In-memory state store that logs writes."""

    def __init__(self, log, marker_write_ok=True):
        self.log = log
        self.marker = None
        self.posted = {}
        self.marker_write_ok = marker_write_ok
        self.fail_reads = False
        self.fail_posted_reads = False

    def get_marker(self):
        if self.fail_reads:
            raise StateStoreError("unavailable")
        return self.marker

    def set_marker(self, marker):
        self.log.append(("marker", marker.event_key))
        if not self.marker_write_ok:
            return False
        self.marker = marker
        return True

    def get_posted_ids(self, user_id):
        if self.fail_posted_reads:
            raise StateStoreError("unavailable")
        return list(self.posted.get(user_id, []))

    def set_posted_ids(self, user_id, ids):
        self.posted[user_id] = list(ids)
        return True


@pytest.fixture
def log():
    return []


@pytest.fixture
def nearby_user():
    """User ~7 km from the epicenter with every channel on."""
    return User(
        id="u1",
        places=(Place(city="Caserta", latitude=41.05, longitude=14.05),),
        notifications=(NotificationPreferences(push=True, telegram=True, telegram_id=123456),),
        push_permission="granted",
    )


@pytest.fixture
def far_user():
    return User(
        id="u2",
        places=(Place(city="Milano", latitude=45.4642, longitude=9.19),),
        notifications=(NotificationPreferences(push=True, telegram=True, telegram_id=654321),),
    )


@pytest.fixture
def catalog():
    labels = ["2.0", "2.4", "3.4", "4.4", "5.4", "6.4", "7.4", "8.4", "9.4"]
    return [Advice(id=f"a{i}", magnitude=label, general=f"consiglio {i}") for i, label in enumerate(labels)]


@pytest.fixture
def sample_config():
    return Config(
        telegram_bot_token="123:abc",
        api_tokens=["secret"],
        broadcast_to_subscribers=False,
    )


@pytest.fixture
def mock_ingv_client():
    client = Mock()
    client.fetch_year_to_date.return_value = SAMPLE_GEOJSON
    return client


@pytest.fixture
def mock_firestore_client(nearby_user, far_user, catalog):
    client = Mock()
    client.get_users.return_value = [nearby_user, far_user]
    client.get_advice_catalog.return_value = catalog
    client.get_telegram_subscribers.return_value = [111, 222]
    client.record_seismic_event.return_value = CreateResult(created=True, document_id="u1_38374841")
    return client


@pytest.fixture
def mock_telegram_client(log):
    client = Mock()

    def send_message(chat_id, text):
        log.append(("telegram", chat_id))
        return TelegramResponse(success=True, status_code=200, chat_id=chat_id)

    def send_to_many(chat_ids, text):
        return [send_message(c, text) for c in chat_ids]

    client.send_message.side_effect = send_message
    client.send_to_many.side_effect = send_to_many
    return client


@pytest.fixture
def mock_inbox_client():
    client = Mock()
    client.send_push.return_value = InboxResponse(success=True, document_id="n1")
    client.send_toast.return_value = InboxResponse(success=True, document_id="n2")
    return client


@pytest.fixture
def state_store(log):
    return FakeStateStore(log)


@pytest.fixture
def orchestrator(
    sample_config,
    mock_ingv_client,
    mock_firestore_client,
    state_store,
    mock_telegram_client,
    mock_inbox_client,
):
    return Orchestrator(
        config=sample_config,
        ingv_client=mock_ingv_client,
        firestore_client=mock_firestore_client,
        state_store=state_store,
        telegram_client=mock_telegram_client,
        inbox_client=mock_inbox_client,
        dispatcher=Dispatcher(mock_telegram_client, mock_inbox_client, radius_km=100.0),
    )


class TestProcessingResult:
    """Tests for ProcessingResult properties."""

    def test_empty_result_is_success(self):
        result = ProcessingResult()

        assert result.success is True
        assert result.alerts_sent == []
        assert result.summary == "Fetched 0 events, none processed"

    def test_errors_mean_failure(self):
        assert ProcessingResult(errors=["boom"]).success is False


class TestProcess:
    """Tests for Orchestrator.process()."""

    def test_scenario_nearby_user(self, orchestrator, mock_firestore_client, mock_telegram_client, state_store):
        result = orchestrator.process()

        assert result.success is True
        assert result.events_fetched == 2
        assert result.latest.id == "38374841"
        assert result.users_in_range == 1

        # Alert then band-3 advice to the nearby user only
        calls = mock_telegram_client.send_message.call_args_list
        assert [c[0][0] for c in calls] == [123456, 123456]
        assert "Terremoto molto forte" in calls[1][0][1]

        event, user_id, distance = mock_firestore_client.record_seismic_event.call_args[0]
        assert event.id == "38374841"
        assert user_id == "u1"
        assert distance == pytest.approx(6.96, abs=0.05)
        assert result.records_created == 1
        assert state_store.posted["u1"] == ["38374841"]
        assert state_store.marker.event_key == "38374841"

    def test_marker_set_before_dispatch(self, orchestrator, log):
        orchestrator.process()

        assert log[0] == ("marker", "38374841")
        assert ("telegram", 123456) in log[1:]

    def test_same_event_twice_dispatches_once(self, orchestrator, mock_telegram_client, mock_firestore_client):
        first = orchestrator.process()
        second = orchestrator.process()

        assert first.duplicate is False
        assert second.duplicate is True
        assert mock_telegram_client.send_message.call_count == 2
        assert mock_firestore_client.record_seismic_event.call_count == 1
        assert "already notified" in second.summary

    def test_marker_write_failure_skips_dispatch(
        self,
        orchestrator,
        state_store,
        mock_telegram_client,
        mock_inbox_client,
    ):
        state_store.marker_write_ok = False

        result = orchestrator.process()

        assert result.success is False
        assert "skipping dispatch" in result.errors[0]
        mock_telegram_client.send_message.assert_not_called()
        mock_inbox_client.send_push.assert_not_called()

    def test_marker_read_failure(self, orchestrator, state_store, mock_telegram_client):
        state_store.fail_reads = True

        result = orchestrator.process()

        assert result.success is False
        mock_telegram_client.send_message.assert_not_called()

    def test_feed_transport_error(self, orchestrator, mock_ingv_client, state_store):
        mock_ingv_client.fetch_year_to_date.side_effect = requests.ConnectionError("down")

        result = orchestrator.process()

        assert result.success is False
        assert "Failed to fetch seismic events" in result.errors[0]
        assert state_store.marker is None

    def test_feed_not_json(self, orchestrator, mock_ingv_client):
        mock_ingv_client.fetch_year_to_date.side_effect = ValueError("Expecting value")

        result = orchestrator.process()

        assert result.success is False

    def test_feed_bad_shape(self, orchestrator, mock_ingv_client):
        mock_ingv_client.fetch_year_to_date.return_value = {"type": "FeatureCollection"}

        result = orchestrator.process()

        assert result.success is False

    def test_event_outside_bounds_is_dropped(self, orchestrator, mock_ingv_client):
        outside = {
            "type": "Feature",
            "properties": {
                "eventId": 38374900,
                "time": "2024-05-20T11:00:00",
                "mag": 5.0,
                "magType": "ML",
                "place": "Grecia",
            },
            "geometry": {"type": "Point", "coordinates": [22.0, 38.0, 10.0]},
        }
        mock_ingv_client.fetch_year_to_date.return_value = {
            "type": "FeatureCollection",
            "features": SAMPLE_GEOJSON["features"] + [outside],
        }

        result = orchestrator.process()

        assert result.events_fetched == 2
        assert result.latest.id == "38374841"

    def test_empty_feed(self, orchestrator, mock_ingv_client, state_store):
        mock_ingv_client.fetch_year_to_date.return_value = {"features": []}

        result = orchestrator.process()

        assert result.success is True
        assert result.latest is None
        assert state_store.marker is None

    def test_broadcast_to_subscribers(self, orchestrator, sample_config, mock_telegram_client):
        sample_config.broadcast_to_subscribers = True

        result = orchestrator.process()

        assert [r.recipient for r in result.broadcast] == ["111", "222"]
        assert len(result.alerts_sent) == 2 + len(result.dispatches[0].sent)

    def test_already_recorded_is_skipped(self, orchestrator, state_store, mock_firestore_client):
        state_store.posted["u1"] = ["38374841"]

        result = orchestrator.process()

        mock_firestore_client.record_seismic_event.assert_not_called()
        assert result.records[0].skipped is True

    def test_record_conflict_is_skipped(self, orchestrator, mock_firestore_client, state_store):
        mock_firestore_client.record_seismic_event.return_value = CreateResult(
            created=False, document_id="u1_38374841", conflict=True,
        )

        result = orchestrator.process()

        assert result.records[0].skipped is True
        assert result.success is True
        assert state_store.posted["u1"] == ["38374841"]

    def test_record_error_is_reported(self, orchestrator, mock_firestore_client, state_store):
        mock_firestore_client.record_seismic_event.return_value = CreateResult(created=False, error="down")

        result = orchestrator.process()

        assert result.success is False
        assert "u1" in result.errors[0]
        assert "u1" not in state_store.posted

    def test_posted_read_failure_keeps_stored_list(self, orchestrator, state_store, mock_firestore_client):
        state_store.posted["u1"] = ["older1", "older2"]
        state_store.fail_posted_reads = True

        result = orchestrator.process()

        mock_firestore_client.record_seismic_event.assert_called_once()
        assert result.records[0].created is True
        assert state_store.posted["u1"] == ["older1", "older2"]

    def test_channel_failure_still_records(self, orchestrator, mock_telegram_client, mock_firestore_client):
        mock_telegram_client.send_message.side_effect = lambda chat_id, text: TelegramResponse(
            success=False, status_code=403, error="blocked", chat_id=chat_id,
        )

        result = orchestrator.process()

        assert len(result.alerts_failed) == 2
        assert mock_firestore_client.record_seismic_event.call_count == 1
