"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- INGV FDSN event client (HTTP)
- Telegram Bot API client (HTTP) and command bot
- Firestore client and state store (database)
- In-app notification inbox (database)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from safequake.shell.ingv_client import INGVClient
from safequake.shell.telegram_client import TelegramClient
from safequake.shell.firestore_client import FirestoreClient
from safequake.shell.state_store import FirestoreStateStore
from safequake.shell.inbox_client import InboxClient
from safequake.shell.config_loader import load_config

__all__ = [
    "INGVClient",
    "TelegramClient",
    "FirestoreClient",
    "FirestoreStateStore",
    "InboxClient",
    "load_config",
]
