"""Unit tests for seismic feed parsing.

No mocks needed: parsing is a pure function of the GeoJSON document.
"""

from datetime import datetime, timezone

import pytest

from safequake.core.seismic_event import (
    FeedFormatError,
    SeismicEvent,
    build_event_record,
    event_to_snapshot,
    latest_event,
    parse_seismic_event,
    parse_seismic_events,
    record_document_id,
)


# Sample INGV FDSN GeoJSON feature
SAMPLE_FEATURE = {
    "type": "Feature",
    "properties": {
        "eventId": 38374841,
        "originId": 126348761,
        "time": "2024-05-20T10:15:30.120000",
        "author": "SURVEY-INGV",
        "magType": "ML",
        "mag": 4.5,
        "magAuthor": "--",
        "type": "earthquake",
        "place": "3 km SE Caserta (CE)",
    },
    "geometry": {
        "type": "Point",
        "coordinates": [14.0, 41.0, 10.2],  # lon, lat, depth
    },
}


def _feature(event_id, time, mag=2.1):
    return {
        "type": "Feature",
        "properties": {"eventId": event_id, "time": time, "mag": mag, "place": "Test"},
        "geometry": {"type": "Point", "coordinates": [13.0, 42.0, 8.0]},
    }


class TestParseSeismicEvent:
    """Tests for parse_seismic_event()."""

    def test_parses_valid_feature(self):
        event = parse_seismic_event(SAMPLE_FEATURE)

        assert event is not None
        assert event.id == "38374841"
        assert event.magnitude == 4.5
        assert event.mag_type == "ML"
        assert event.place == "3 km SE Caserta (CE)"
        assert event.latitude == 41.0
        assert event.longitude == 14.0
        assert event.depth_km == 10.2
        assert event.author == "SURVEY-INGV"

    def test_naive_time_is_utc(self):
        event = parse_seismic_event(SAMPLE_FEATURE)

        assert event.time == datetime(2024, 5, 20, 10, 15, 30, 120000, tzinfo=timezone.utc)

    def test_zulu_time(self):
        event = parse_seismic_event(_feature(1, "2024-05-20T10:15:30Z"))

        assert event.time == datetime(2024, 5, 20, 10, 15, 30, tzinfo=timezone.utc)

    def test_epoch_millis_time(self):
        """Numeric times are milliseconds since epoch."""
        event = parse_seismic_event(_feature(1, 1703001600000))

        assert event.time == datetime(2023, 12, 19, 16, 0, 0, tzinfo=timezone.utc)

    def test_falls_back_to_feature_id(self):
        feature = {
            "id": "ingv123",
            "properties": {"time": "2024-01-01T00:00:00", "mag": 3.0, "place": "Somewhere"},
            "geometry": {"coordinates": [13.0, 42.0, 5.0]},
        }

        event = parse_seismic_event(feature)

        assert event.id == "ingv123"

    def test_default_mag_type(self):
        feature = _feature(7, "2024-01-01T00:00:00")

        assert parse_seismic_event(feature).mag_type == "ML"

    def test_missing_magnitude_returns_none(self):
        feature = _feature(1, "2024-01-01T00:00:00")
        del feature["properties"]["mag"]

        assert parse_seismic_event(feature) is None

    def test_missing_coordinates_returns_none(self):
        feature = _feature(1, "2024-01-01T00:00:00")
        feature["geometry"]["coordinates"] = [13.0]

        assert parse_seismic_event(feature) is None

    def test_invalid_time_returns_none(self):
        assert parse_seismic_event(_feature(1, "yesterday")) is None

    def test_missing_time_returns_none(self):
        assert parse_seismic_event(_feature(1, None)) is None


class TestParseSeismicEvents:
    """Tests for parse_seismic_events()."""

    def test_sorted_newest_first(self):
        geojson = {"features": [
            _feature(1, "2024-01-01T00:00:00"),
            _feature(3, "2024-03-01T00:00:00"),
            _feature(2, "2024-02-01T00:00:00"),
        ]}

        events = parse_seismic_events(geojson)

        assert [e.id for e in events] == ["3", "2", "1"]

    def test_drops_invalid_features(self):
        geojson = {"features": [
            _feature(1, "2024-01-01T00:00:00"),
            {"properties": {}, "geometry": {}},
            "not a feature",
        ]}

        events = parse_seismic_events(geojson)

        assert len(events) == 1

    def test_empty_collection(self):
        assert parse_seismic_events({"type": "FeatureCollection", "features": []}) == []

    def test_missing_features_raises(self):
        with pytest.raises(FeedFormatError):
            parse_seismic_events({"type": "FeatureCollection"})

    def test_features_not_a_list_raises(self):
        with pytest.raises(FeedFormatError):
            parse_seismic_events({"features": {"a": 1}})

    def test_not_an_object_raises(self):
        with pytest.raises(FeedFormatError):
            parse_seismic_events(["features"])


class TestLatestEvent:
    """Tests for latest_event()."""

    def test_picks_maximum_time(self):
        events = parse_seismic_events({"features": [
            _feature(1, "2024-01-01T00:00:00"),
            _feature(2, "2024-06-01T00:00:00"),
        ]})

        assert latest_event(list(reversed(events))).id == "2"

    def test_empty_returns_none(self):
        assert latest_event([]) is None


class TestRecords:
    """Tests for snapshot and record builders."""

    @pytest.fixture
    def event(self):
        return parse_seismic_event(SAMPLE_FEATURE)

    def test_snapshot_is_serializable(self, event):
        snapshot = event_to_snapshot(event)

        assert snapshot["id"] == "38374841"
        assert snapshot["time"] == "2024-05-20T10:15:30.120000+00:00"

    def test_record_document_id(self):
        assert record_document_id("user1", "38374841") == "user1_38374841"

    def test_build_event_record(self, event):
        record = build_event_record(event, "user1", 6.96)

        assert record["eventId"] == "38374841"
        assert record["proximity"] == 6.96
        assert record["user"] == "user1"
        assert record["geometry"] == [{"latitude": 41.0, "longitude": 14.0, "depth": 10.2}]
        assert record["magType"] == "ML"

    def test_event_is_immutable(self, event):
        with pytest.raises(AttributeError):
            event.magnitude = 9.0

    def test_coordinates(self, event):
        assert isinstance(event, SeismicEvent)
        assert event.coordinates == (41.0, 14.0)
