"""Secret Manager Client - Imperative Shell.

This module handles reading secrets from Google Cloud Secret Manager and
resolving ``${ENV_VAR}`` / ``${secret:name}`` placeholders in config values.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from google.cloud import secretmanager


logger = logging.getLogger(__name__)


SECRET_PREFIX = "secret:"


@dataclass
class SecretManagerConfig:
    """Configuration for Secret Manager client.

    Attributes:
        project_id: GCP project ID (None for default)
    """
    project_id: Optional[str] = None


def parse_placeholder(value: str) -> Optional[str]:
    """Return the inside of a ``${...}`` placeholder, or None."""
    if value.startswith("${") and value.endswith("}"):
        return value[2:-1]
    return None


class SecretManagerClient:
    """Client for reading secrets from Google Cloud Secret Manager.

    This is part of the imperative shell - it handles secret I/O.
    """

    def __init__(self, config: Optional[SecretManagerConfig] = None) -> None:
        """Initialize Secret Manager client.

        Args:
            config: Secret Manager configuration
        """
        self.config = config or SecretManagerConfig()
        self._client: Optional[secretmanager.SecretManagerServiceClient] = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy initialization of Secret Manager client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def get_secret(
        self,
        secret_name: str,
        version: str = "latest",
        project_id: Optional[str] = None,
    ) -> Optional[str]:
        """Fetch a secret value from Secret Manager.

        This method performs I/O.

        Args:
            secret_name: Name of the secret (not the full resource path)
            version: Version of the secret (default: "latest")
            project_id: GCP project ID (uses config if not provided)

        Returns:
            Secret value as string, or None if not found
        """
        project = project_id or self.config.project_id

        if not project:
            logger.error("No project ID configured for Secret Manager")
            return None

        name = f"projects/{project}/secrets/{secret_name}/versions/{version}"

        try:
            logger.info("Fetching secret: %s", secret_name)
            response = self.client.access_secret_version(request={"name": name})
            return response.payload.data.decode("UTF-8")

        except Exception as e:
            logger.error("Failed to fetch secret %s: %s", secret_name, str(e))
            return None

    def resolve(self, value: str) -> str:
        """Resolve a config value that may be a placeholder.

        ``${secret:name}`` is read from Secret Manager, ``${NAME}`` from the
        environment. Unresolvable placeholders are returned unchanged so
        config validation can flag them.

        Args:
            value: Raw config value

        Returns:
            Resolved value
        """
        placeholder = parse_placeholder(value)
        if placeholder is None:
            return value

        if placeholder.startswith(SECRET_PREFIX):
            secret_value = self.get_secret(placeholder[len(SECRET_PREFIX):])
            if secret_value is not None:
                return secret_value
            logger.warning("Secret %s could not be resolved", placeholder)
            return value

        env_value = os.environ.get(placeholder)
        if env_value:
            return env_value

        logger.warning("Environment variable %s not set", placeholder)
        return value
