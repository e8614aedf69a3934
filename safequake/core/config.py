"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from safequake.core.dedup import DEFAULT_MAX_POSTED
from safequake.core.geo import ITALY_BOUNDS, BoundingBox
from safequake.core.retry import RetryPolicy
from safequake.core.rules import DEFAULT_RADIUS_KM


DEFAULT_FEED_URL = "https://webservices.ingv.it/fdsnws/event/1/query"
DEFAULT_FRONTEND_URL = "http://localhost:3000"


@dataclass
class FirestoreCollections:
    """Firestore collection names.

    Attributes:
        users: Registered users
        seismic_events: Per-user proximity records
        advices: Advice catalog
        telegram_users: Telegram subscribers
        notifications: In-app inbox (push and toast payloads)
        state: Notified marker and per-user posted lists
    """
    users: str = "users"
    seismic_events: str = "seismic_events"
    advices: str = "advices"
    telegram_users: str = "telegram_users"
    notifications: str = "notifications"
    state: str = "safequake_state"


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        polling_interval_seconds: How often to poll the feed
        feed_url: FDSN event query endpoint
        bounds: Region queried from the feed
        min_magnitude: Minimum magnitude requested from the feed
        proximity_radius_km: Alert radius around a user's place
        broadcast_to_subscribers: Also alert every Telegram subscriber
        firestore_database: Firestore database name (None for default)
        collections: Firestore collection names
        telegram_bot_token: Bot token for the Telegram Bot API
        frontend_url: Base URL of the web app (used in post links)
        api_tokens: Bearer tokens accepted by the REST API
        retry: Retry policy for Telegram sends
        max_posted: Posted-event ids kept per user
    """
    polling_interval_seconds: int = 30
    feed_url: str = DEFAULT_FEED_URL
    bounds: BoundingBox = ITALY_BOUNDS
    min_magnitude: float = 0.0
    proximity_radius_km: float = DEFAULT_RADIUS_KM
    broadcast_to_subscribers: bool = True
    firestore_database: str | None = None
    collections: FirestoreCollections = field(default_factory=FirestoreCollections)
    telegram_bot_token: str = ""
    frontend_url: str = DEFAULT_FRONTEND_URL
    api_tokens: list[str] = field(default_factory=list)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    max_posted: int = DEFAULT_MAX_POSTED


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_coordinates(lat: float, lon: float, field_name: str) -> list[ValidationError]:
    """Validate latitude/longitude coordinates.

    Pure function.

    Args:
        lat: Latitude value
        lon: Longitude value
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not -90 <= lat <= 90:
        errors.append(ValidationError(
            field=field_name,
            message=f"Latitude {lat} out of range [-90, 90]",
        ))

    if not -180 <= lon <= 180:
        errors.append(ValidationError(
            field=field_name,
            message=f"Longitude {lon} out of range [-180, 180]",
        ))

    return errors


def validate_bounds(bounds: BoundingBox, field_name: str) -> list[ValidationError]:
    """Validate a bounding box.

    Pure function.
    """
    errors = []

    errors.extend(validate_coordinates(
        bounds.min_latitude, bounds.min_longitude,
        f"{field_name}.min",
    ))
    errors.extend(validate_coordinates(
        bounds.max_latitude, bounds.max_longitude,
        f"{field_name}.max",
    ))

    if bounds.min_latitude > bounds.max_latitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_latitude ({bounds.min_latitude}) > max_latitude ({bounds.max_latitude})",
        ))

    if bounds.min_longitude > bounds.max_longitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_longitude ({bounds.min_longitude}) > max_longitude ({bounds.max_longitude})",
        ))

    return errors


def validate_retry(policy: RetryPolicy, field_name: str = "retry") -> list[ValidationError]:
    """Validate a retry policy. Pure function."""
    errors = []

    if policy.max_attempts < 1:
        errors.append(ValidationError(
            field=f"{field_name}.max_attempts",
            message=f"max_attempts must be at least 1, got {policy.max_attempts}",
        ))

    if policy.base_delay_seconds < 0 or policy.max_delay_seconds < 0:
        errors.append(ValidationError(
            field=field_name,
            message="Retry delays must not be negative",
        ))

    if policy.multiplier < 1:
        errors.append(ValidationError(
            field=f"{field_name}.multiplier",
            message=f"multiplier below 1 shrinks delays ({policy.multiplier})",
            severity="warning",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    errors.extend(validate_bounds(config.bounds, "bounds"))
    errors.extend(validate_retry(config.retry))

    if config.polling_interval_seconds <= 0:
        errors.append(ValidationError(
            field="polling_interval_seconds",
            message=f"Polling interval must be positive, got {config.polling_interval_seconds}",
        ))

    if config.proximity_radius_km <= 0:
        errors.append(ValidationError(
            field="proximity_radius_km",
            message=f"Proximity radius must be positive, got {config.proximity_radius_km}",
        ))

    if config.min_magnitude < 0:
        errors.append(ValidationError(
            field="min_magnitude",
            message=f"Minimum magnitude must not be negative, got {config.min_magnitude}",
        ))

    if config.max_posted < 1:
        errors.append(ValidationError(
            field="max_posted",
            message=f"max_posted must be at least 1, got {config.max_posted}",
        ))

    if not config.feed_url.startswith(("http://", "https://")):
        errors.append(ValidationError(
            field="feed_url",
            message=f"Feed URL must be http(s), got '{config.feed_url}'",
        ))

    # Warn about unresolved secrets
    if not config.telegram_bot_token or config.telegram_bot_token.startswith("${"):
        errors.append(ValidationError(
            field="telegram_bot_token",
            message="Telegram bot token not set; Telegram sends will fail",
            severity="warning",
        ))

    if not config.api_tokens:
        errors.append(ValidationError(
            field="api_tokens",
            message="No API tokens configured; protected routes will reject every request",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
