"""Tests for the Secret Manager client."""

import os
from unittest.mock import MagicMock, patch

import pytest

from safequake.shell.secret_manager_client import (
    SecretManagerClient,
    SecretManagerConfig,
    parse_placeholder,
)


@pytest.fixture
def mock_sm():
    sm = MagicMock()
    sm.access_secret_version.return_value.payload.data = b"123:abc"
    return sm


@pytest.fixture
def client(mock_sm):
    secret_client = SecretManagerClient(SecretManagerConfig(project_id="test-project"))
    secret_client._client = mock_sm
    return secret_client


class TestParsePlaceholder:
    """Tests for parse_placeholder()."""

    def test_placeholder(self):
        assert parse_placeholder("${secret:bot}") == "secret:bot"

    def test_plain_value(self):
        assert parse_placeholder("plain") is None


class TestGetSecret:
    """Tests for SecretManagerClient.get_secret()."""

    def test_reads_latest_version(self, client, mock_sm):
        assert client.get_secret("bot") == "123:abc"

        request = mock_sm.access_secret_version.call_args[1]["request"]
        assert request == {"name": "projects/test-project/secrets/bot/versions/latest"}

    def test_without_project(self, mock_sm):
        secret_client = SecretManagerClient()
        secret_client._client = mock_sm

        assert secret_client.get_secret("bot") is None
        mock_sm.access_secret_version.assert_not_called()

    def test_error_returns_none(self, client, mock_sm):
        mock_sm.access_secret_version.side_effect = RuntimeError("denied")

        assert client.get_secret("bot") is None


class TestResolve:
    """Tests for SecretManagerClient.resolve()."""

    def test_plain_value(self, client):
        assert client.resolve("https://example.com") == "https://example.com"

    def test_secret_placeholder(self, client):
        assert client.resolve("${secret:bot}") == "123:abc"

    def test_missing_secret_left_unchanged(self, client, mock_sm):
        mock_sm.access_secret_version.side_effect = RuntimeError("not found")

        assert client.resolve("${secret:bot}") == "${secret:bot}"

    def test_env_placeholder(self, client):
        with patch.dict(os.environ, {"FRONTEND_URL": "https://safequake.example"}):
            assert client.resolve("${FRONTEND_URL}") == "https://safequake.example"

    def test_missing_env_left_unchanged(self, client):
        with patch.dict(os.environ, {}, clear=True):
            assert client.resolve("${FRONTEND_URL}") == "${FRONTEND_URL}"
