"""User profile models - Pure data structures.

Users are stored as documents with list-valued ``place`` and
``notifications`` fields. Only the first entry of each list is ever read
by the proximity flow.
"""

from dataclasses import dataclass, field
from typing import Any


SUPPORTED_LANGUAGES = ("it", "en", "es")
DEFAULT_LANGUAGE = "it"

PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"
PERMISSION_DEFAULT = "default"


@dataclass(frozen=True)
class Place:
    """A user's registered place.

    Attributes:
        region: Region name
        province: Province name
        city: City name
        address: Street address
        cap: Postal code
        latitude: Decimal degrees, None if not geocoded
        longitude: Decimal degrees, None if not geocoded
    """
    region: str = ""
    province: str = ""
    city: str = ""
    address: str = ""
    cap: str = ""
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class NotificationPreferences:
    """Per-user notification switches.

    Attributes:
        push: Browser push notifications enabled
        telegram: Telegram notifications enabled
        telegram_user: Telegram handle (display only)
        telegram_id: Telegram numeric chat id
    """
    push: bool = False
    telegram: bool = False
    telegram_user: str = ""
    telegram_id: int | None = None

    @property
    def telegram_enabled(self) -> bool:
        return self.telegram and self.telegram_id is not None


@dataclass(frozen=True)
class User:
    """A registered user as seen by the proximity flow."""
    id: str
    name: str = ""
    username: str = ""
    email: str = ""
    language: str = DEFAULT_LANGUAGE
    places: tuple[Place, ...] = field(default_factory=tuple)
    notifications: tuple[NotificationPreferences, ...] = field(default_factory=tuple)
    push_permission: str = PERMISSION_DEFAULT

    @property
    def place(self) -> Place | None:
        """The active place (index 0), if any."""
        return self.places[0] if self.places else None

    @property
    def preferences(self) -> NotificationPreferences | None:
        """The active notification preferences (index 0), if any."""
        return self.notifications[0] if self.notifications else None

    @property
    def push_granted(self) -> bool:
        return self.push_permission == PERMISSION_GRANTED


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_place(data: dict[str, Any]) -> Place:
    """Parse a place sub-document."""
    return Place(
        region=data.get("region") or "",
        province=data.get("province") or "",
        city=data.get("city") or "",
        address=data.get("address") or "",
        cap=data.get("cap") or "",
        latitude=_optional_float(data.get("latitude")),
        longitude=_optional_float(data.get("longitude")),
    )


def parse_preferences(data: dict[str, Any]) -> NotificationPreferences:
    """Parse a notifications sub-document."""
    return NotificationPreferences(
        push=bool(data.get("push", False)),
        telegram=bool(data.get("telegram", False)),
        telegram_user=data.get("userTelegram") or "",
        telegram_id=_optional_int(data.get("userIdTelegram")),
    )


def normalize_language(language: str | None) -> str:
    """Map a language tag (e.g. 'en-US') onto a supported language code."""
    if not language:
        return DEFAULT_LANGUAGE
    code = language.split("-")[0].lower()
    return code if code in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def parse_user(user_id: str, data: dict[str, Any]) -> User:
    """Parse a stored user document into a User.

    Pure function. Non-dict entries in ``place``/``notifications`` are skipped.
    """
    places = tuple(
        parse_place(p) for p in data.get("place") or [] if isinstance(p, dict)
    )
    notifications = tuple(
        parse_preferences(n) for n in data.get("notifications") or [] if isinstance(n, dict)
    )

    return User(
        id=user_id,
        name=data.get("name") or "",
        username=data.get("username") or "",
        email=data.get("email") or "",
        language=normalize_language(data.get("favoriteLanguage")),
        places=places,
        notifications=notifications,
        push_permission=data.get("pushPermission") or PERMISSION_DEFAULT,
    )
