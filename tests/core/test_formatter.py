"""Unit tests for message formatting.

Pure function tests - no mocks needed.
"""

from datetime import datetime, timezone

import pytest

from safequake.core.advice import Advice
from safequake.core.seismic_event import SeismicEvent
from safequake.core.formatter import (
    APP_NAME,
    format_disabled_toast,
    format_event_title,
    format_event_toast,
    format_italian_time,
    format_my_id,
    format_permission_toast,
    format_push_notification,
    format_telegram_advice,
    format_telegram_alert,
    format_telegram_broadcast,
    format_telegram_post,
    get_labels,
)


@pytest.fixture
def sample_event():
    """Create a sample event for testing."""
    return SeismicEvent(
        id="38374841",
        magnitude=4.5,
        mag_type="ML",
        place="3 km SE Caserta (CE)",
        time=datetime(2024, 5, 20, 10, 15, 30, tzinfo=timezone.utc),
        latitude=41.0,
        longitude=14.0,
        depth_km=10.0,
        author="SURVEY-INGV",
    )


class TestFormatItalianTime:
    """Tests for format_italian_time()."""

    def test_summer_time(self):
        """CEST is UTC+2."""
        value = datetime(2024, 5, 20, 10, 15, 30, tzinfo=timezone.utc)

        assert format_italian_time(value) == "20/05/2024, 12:15:30"

    def test_winter_time(self):
        """CET is UTC+1."""
        value = datetime(2024, 1, 15, 23, 30, 0, tzinfo=timezone.utc)

        assert format_italian_time(value) == "16/01/2024, 00:30:00"


class TestLabels:
    """Tests for localised labels."""

    @pytest.mark.parametrize("language,magnitude", [
        ("it", "Magnitudo"),
        ("en", "Magnitude"),
        ("es", "Magnitud"),
    ])
    def test_supported_languages(self, language, magnitude):
        assert get_labels(language).magnitude == magnitude

    def test_unknown_language_falls_back_to_italian(self):
        assert get_labels("de") == get_labels("it")


class TestBrowserMessages:
    """Tests for push notification and toast payloads."""

    def test_title(self, sample_event):
        assert format_event_title(sample_event) == "SafeQuake Alert - Magnitudo: ML 4.5"

    def test_title_english(self, sample_event):
        assert format_event_title(sample_event, "en") == "SafeQuake Alert - Magnitude: ML 4.5"

    def test_push_body(self, sample_event):
        notification = format_push_notification(sample_event, 6.96)

        assert notification.body.split("\n") == [
            "Zona: 3 km SE Caserta (CE)",
            "Data: 20/05/2024, 12:15:30",
            "Profondità: Km 10",
            "Distanza: Km 6.96",
        ]

    def test_push_body_spanish(self, sample_event):
        notification = format_push_notification(sample_event, 6.96, "es")

        assert notification.body.startswith("Zona: 3 km SE Caserta (CE)\nFecha:")

    def test_undetermined_distance(self, sample_event):
        notification = format_push_notification(sample_event, None)

        assert "Distanza: Km n/d" in notification.body

    def test_event_toast_matches_push(self, sample_event):
        toast = format_event_toast(sample_event, 6.96)
        notification = format_push_notification(sample_event, 6.96)

        assert toast.title == notification.title
        assert "\n".join(toast.lines) == notification.body

    def test_permission_toast(self):
        toast = format_permission_toast("en")

        assert toast.title == APP_NAME
        assert toast.lines == ("To receive push notifications, allow notifications in your browser.",)

    def test_disabled_toast(self):
        assert format_disabled_toast().lines == ("Le tue notifiche sono disattivate.",)


class TestTelegramMessages:
    """Tests for Telegram message texts."""

    def test_alert(self, sample_event):
        text = format_telegram_alert(sample_event, 6.96)

        assert text.startswith("⚠️ Avviso Terremoto (Raggio di 100km)!")
        assert "magnitudo ML 4.5" in text
        assert "3 km SE Caserta (CE) il 20/05/2024, 12:15:30" in text
        assert "latitudine 41.0, longitudine 14.0" in text
        assert "SURVEY-INGV" in text
        assert text.endswith("è distante Km 6.96.")

    def test_alert_custom_radius(self, sample_event):
        assert "Raggio di 50km" in format_telegram_alert(sample_event, 1.0, radius_km=50)

    def test_broadcast_has_no_distance(self, sample_event):
        text = format_telegram_broadcast(sample_event)

        assert text.startswith("⚠️ Avviso Terremoto!")
        assert "distante" not in text

    def test_advice(self):
        advice = Advice(
            id="a3",
            magnitude="4.4 - 5.4",
            general="Mantieni la calma",
            during="Riparati",
            safety_tips="Prepara un kit",
        )

        text = format_telegram_advice(advice, "Magnitudo tra 4.4 e 5.4: Terremoto molto forte")

        assert text.startswith("Informazioni utili\n\nMagnitudo tra 4.4 e 5.4")
        assert "Consiglio: Mantieni la calma" in text
        assert "Durante il terremoto: Riparati" in text
        assert text.endswith("Consigli di sicurezza: Prepara un kit")

    def test_post(self):
        post = {
            "id": "p1",
            "title": "Nuovo articolo",
            "category": "Prevenzione",
            "author": "Redazione",
            "description": "Cosa fare",
        }

        text = format_telegram_post(
            post,
            "https://safequake.example/",
            published_at=datetime(2024, 5, 20, 8, 0, tzinfo=timezone.utc),
        )

        assert text.startswith("Nuovo articolo\n\nCategoria: Prevenzione")
        assert "Data Pubblicazione: 20/05/2024, 10:00:00" in text
        assert text.endswith("Link: https://safequake.example/detail-post/p1")

    def test_post_without_date(self):
        text = format_telegram_post({"id": "p1"}, "http://localhost:3000")

        assert "Data Pubblicazione: n/d" in text

    def test_my_id(self):
        assert format_my_id(123456).endswith("\n 123456")
