"""Tests for the Telegram Bot API client.

Uses the `responses` library to mock HTTP requests.
"""

import json

import pytest
import requests
import responses

from safequake.core.retry import RetryPolicy
from safequake.shell.telegram_client import TelegramClient


TOKEN = "123:abc"
SEND_URL = f"https://api.telegram.org/bot{TOKEN}/sendMessage"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(sleeps):
    return TelegramClient(
        bot_token=TOKEN,
        retry_policy=RetryPolicy(max_attempts=3, base_delay_seconds=1.0, multiplier=2.0),
        sleep=sleeps.append,
    )


class TestSendMessage:
    """Tests for TelegramClient.send_message()."""

    @responses.activate
    def test_success(self, client):
        responses.add(responses.POST, SEND_URL, json={"ok": True, "result": {}}, status=200)

        result = client.send_message(123456, "Ciao")

        assert result.success is True
        assert result.status_code == 200
        assert result.attempts == 1
        assert result.chat_id == 123456

    @responses.activate
    def test_sends_json_payload(self, client):
        responses.add(responses.POST, SEND_URL, json={"ok": True}, status=200)

        client.send_message(123456, "Ciao")

        body = json.loads(responses.calls[0].request.body)
        assert body == {"chat_id": 123456, "text": "Ciao"}

    @responses.activate
    def test_retries_429_with_retry_after(self, client, sleeps):
        responses.add(
            responses.POST,
            SEND_URL,
            json={"ok": False, "description": "Too Many Requests", "parameters": {"retry_after": 5}},
            status=429,
        )
        responses.add(responses.POST, SEND_URL, json={"ok": True}, status=200)

        result = client.send_message(1, "x")

        assert result.success is True
        assert result.attempts == 2
        assert sleeps == [5.0]

    @responses.activate
    def test_retries_5xx_with_backoff_then_gives_up(self, client, sleeps):
        for _ in range(3):
            responses.add(responses.POST, SEND_URL, json={"ok": False, "description": "Bad Gateway"}, status=502)

        result = client.send_message(1, "x")

        assert result.success is False
        assert result.status_code == 502
        assert result.attempts == 3
        assert result.error == "Bad Gateway"
        assert sleeps == [1.0, 2.0]
        assert len(responses.calls) == 3

    @responses.activate
    def test_no_retry_on_400(self, client, sleeps):
        responses.add(
            responses.POST,
            SEND_URL,
            json={"ok": False, "description": "Bad Request: chat not found"},
            status=400,
        )

        result = client.send_message(1, "x")

        assert result.success is False
        assert result.status_code == 400
        assert result.error == "Bad Request: chat not found"
        assert result.attempts == 1
        assert sleeps == []

    @responses.activate
    def test_transport_error_is_retried(self, client, sleeps):
        responses.add(responses.POST, SEND_URL, body=requests.ConnectionError("reset"))
        responses.add(responses.POST, SEND_URL, json={"ok": True}, status=200)

        result = client.send_message(1, "x")

        assert result.success is True
        assert result.attempts == 2
        assert sleeps == [1.0]

    @responses.activate
    def test_timeout_reported(self, sleeps):
        client = TelegramClient(bot_token=TOKEN, retry_policy=RetryPolicy(max_attempts=1), sleep=sleeps.append)
        responses.add(responses.POST, SEND_URL, body=requests.Timeout("slow"))

        result = client.send_message(1, "x")

        assert result.success is False
        assert result.status_code == 0
        assert result.error == "Request timed out"

    def test_missing_token(self):
        result = TelegramClient(bot_token="").send_message(1, "x")

        assert result.success is False
        assert result.attempts == 0
        assert result.error == "Bot token not configured"


class TestSendToMany:
    """Tests for TelegramClient.send_to_many()."""

    @responses.activate
    def test_failure_does_not_stop_others(self, client):
        responses.add(responses.POST, SEND_URL, json={"ok": False, "description": "blocked"}, status=403)
        responses.add(responses.POST, SEND_URL, json={"ok": True}, status=200)

        results = client.send_to_many([1, 2], "x")

        assert [r.success for r in results] == [False, True]
        assert [r.chat_id for r in results] == [1, 2]

    def test_empty(self, client):
        assert client.send_to_many([], "x") == []
