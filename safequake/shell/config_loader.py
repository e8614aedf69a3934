"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, FirestoreCollections) are defined in safequake/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Optional

import yaml

from safequake.core.config import Config, FirestoreCollections
from safequake.core.geo import ITALY_BOUNDS, BoundingBox
from safequake.core.retry import RetryPolicy
from safequake.shell.secret_manager_client import (
    SecretManagerClient,
    SecretManagerConfig,
    parse_placeholder,
)


logger = logging.getLogger(__name__)


def _get_project_id() -> Optional[str]:
    return os.environ.get("GCP_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")


def _get_secret_manager_client() -> Optional[SecretManagerClient]:
    """Get a Secret Manager client.

    Returns None if no GCP project is configured (e.g., local development).
    """
    project_id = _get_project_id()
    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: Optional[SecretManagerClient] = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may be a ${...} placeholder)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    placeholder = parse_placeholder(value)
    if placeholder is not None and not placeholder.startswith("secret:"):
        env_value = os.environ.get(placeholder)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", placeholder)

    return value


def _parse_bounds(data: dict[str, Any]) -> BoundingBox:
    """Parse a bounding box from config data."""
    return BoundingBox(
        min_latitude=float(data["min_latitude"]),
        max_latitude=float(data["max_latitude"]),
        min_longitude=float(data["min_longitude"]),
        max_longitude=float(data["max_longitude"]),
    )


def _parse_bounds_string(value: str) -> Optional[BoundingBox]:
    """Parse 'min_lat,max_lat,min_lon,max_lon'."""
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 4:
        logger.warning("Ignoring MONITORING_BOUNDS with %d parts (expected 4)", len(parts))
        return None
    return BoundingBox(
        min_latitude=float(parts[0]),
        max_latitude=float(parts[1]),
        min_longitude=float(parts[2]),
        max_longitude=float(parts[3]),
    )


def _parse_retry(data: dict[str, Any]) -> RetryPolicy:
    """Parse a retry policy from config data."""
    defaults = RetryPolicy()
    return RetryPolicy(
        max_attempts=int(data.get("max_attempts", defaults.max_attempts)),
        base_delay_seconds=float(data.get("base_delay_seconds", defaults.base_delay_seconds)),
        multiplier=float(data.get("multiplier", defaults.multiplier)),
        max_delay_seconds=float(data.get("max_delay_seconds", defaults.max_delay_seconds)),
    )


def _parse_collections(data: dict[str, Any]) -> FirestoreCollections:
    """Parse collection name overrides; unknown keys are ignored."""
    known = {f.name for f in fields(FirestoreCollections)}
    unknown = set(data) - known
    if unknown:
        logger.warning("Ignoring unknown Firestore collections: %s", sorted(unknown))
    return FirestoreCollections(**{k: str(v) for k, v in data.items() if k in known})


def _parse_tokens(value: Any, secret_client: Optional[SecretManagerClient]) -> list[str]:
    """Parse API tokens from a list or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        value = _resolve_value(value, secret_client).split(",")
    tokens = [str(_resolve_value(t, secret_client)).strip() for t in value]
    return [t for t in tokens if t and not t.startswith("${")]


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = _get_secret_manager_client()

    feed = data.get("feed", {})
    firestore_data = data.get("firestore", {})
    telegram = data.get("telegram", {})
    defaults = Config()

    bounds = _parse_bounds(feed["bounds"]) if "bounds" in feed else ITALY_BOUNDS

    return Config(
        polling_interval_seconds=int(data.get("polling_interval_seconds", defaults.polling_interval_seconds)),
        feed_url=_resolve_value(feed.get("url", defaults.feed_url), secret_client),
        bounds=bounds,
        min_magnitude=float(feed.get("min_magnitude", defaults.min_magnitude)),
        proximity_radius_km=float(data.get("proximity_radius_km", defaults.proximity_radius_km)),
        broadcast_to_subscribers=bool(data.get("broadcast_to_subscribers", True)),
        firestore_database=firestore_data.get("database"),
        collections=_parse_collections(firestore_data.get("collections", {})),
        telegram_bot_token=_resolve_value(telegram.get("bot_token", ""), secret_client),
        frontend_url=_resolve_value(data.get("frontend_url", defaults.frontend_url), secret_client),
        api_tokens=_parse_tokens(data.get("api_tokens"), secret_client),
        retry=_parse_retry(telegram.get("retry", {})),
        max_posted=int(data.get("max_posted", defaults.max_posted)),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using environment")
        return load_config_from_env()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: radius %.0f km, polling every %ds, broadcast %s",
        config.proximity_radius_km,
        config.polling_interval_seconds,
        config.broadcast_to_subscribers,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        TELEGRAM_BOT_TOKEN: Bot token (or TELEGRAM_BOT_SECRET to read it from
            Secret Manager)
        FEED_URL: FDSN event query URL
        MONITORING_BOUNDS: Comma-separated bounds (min_lat,max_lat,min_lon,max_lon)
        MIN_MAGNITUDE: Minimum magnitude requested from the feed
        PROXIMITY_RADIUS_KM: Alert radius around users
        POLLING_INTERVAL_SECONDS: Poll interval for the local loop
        FIRESTORE_DATABASE: Firestore database name
        FRONTEND_URL: Base URL of the web app
        API_TOKENS: Comma-separated bearer tokens for the REST API

    Returns:
        Config object from environment
    """
    defaults = Config()

    bot_token = os.environ.get("TELEGRAM_BOT_TOKEN", "")
    secret_name = os.environ.get("TELEGRAM_BOT_SECRET")
    if not bot_token and secret_name:
        secret_client = _get_secret_manager_client()
        if secret_client:
            bot_token = secret_client.get_secret(secret_name) or ""
            if bot_token:
                logger.info("Using Telegram bot token from Secret Manager")

    if not bot_token:
        logger.warning("TELEGRAM_BOT_TOKEN not set and no secret found")

    bounds = ITALY_BOUNDS
    bounds_str = os.environ.get("MONITORING_BOUNDS")
    if bounds_str:
        bounds = _parse_bounds_string(bounds_str) or ITALY_BOUNDS

    return Config(
        polling_interval_seconds=int(
            os.environ.get("POLLING_INTERVAL_SECONDS", defaults.polling_interval_seconds)
        ),
        feed_url=os.environ.get("FEED_URL", defaults.feed_url),
        bounds=bounds,
        min_magnitude=float(os.environ.get("MIN_MAGNITUDE", defaults.min_magnitude)),
        proximity_radius_km=float(
            os.environ.get("PROXIMITY_RADIUS_KM", defaults.proximity_radius_km)
        ),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        telegram_bot_token=bot_token,
        frontend_url=os.environ.get("FRONTEND_URL", defaults.frontend_url),
        api_tokens=_parse_tokens(os.environ.get("API_TOKENS"), None),
    )
