"""In-App Notification Inbox - Imperative Shell.

Browser push notifications and in-app toasts are delivered by the web
client. The server side of both channels is a Firestore ``notifications``
collection: one document per notification, read by the client and shown
through the browser Notification API or as a toast.
"""

import logging
from dataclasses import dataclass

from safequake.core.formatter import PushNotification, Toast
from safequake.shell.firestore_client import FirestoreClient


logger = logging.getLogger(__name__)


KIND_PUSH = "push"
KIND_TOAST = "toast"


@dataclass
class InboxResponse:
    """Result of storing an inbox notification.

    Attributes:
        success: Whether the notification was stored
        document_id: Id of the stored notification
        error: Error message if failed
    """
    success: bool
    document_id: str | None = None
    error: str | None = None


class InboxClient:
    """Writes push and toast notifications to a user's inbox."""

    def __init__(
        self,
        firestore_client: FirestoreClient | None = None,
        collection: str | None = None,
    ) -> None:
        self.firestore = firestore_client or FirestoreClient()
        self.collection = collection or self.firestore.collections.notifications

    def _store(self, user_id: str, document: dict, event_id: str | None) -> InboxResponse:
        payload = {
            "user": user_id,
            "eventId": event_id,
            "read": False,
            **document,
        }

        try:
            result = self.firestore.create_document(self.collection, payload)
        except Exception as e:
            logger.error("Failed to store %s for user %s: %s", document.get("kind"), user_id, str(e))
            return InboxResponse(success=False, error=str(e))

        return InboxResponse(success=result.created, document_id=result.document_id, error=result.error)

    def send_push(
        self,
        user_id: str,
        notification: PushNotification,
        event_id: str | None = None,
    ) -> InboxResponse:
        """Queue a browser push notification for a user."""
        logger.info("Queueing push notification for user %s", user_id)
        return self._store(
            user_id,
            {"kind": KIND_PUSH, "title": notification.title, "body": notification.body},
            event_id,
        )

    def send_toast(
        self,
        user_id: str,
        toast: Toast,
        event_id: str | None = None,
    ) -> InboxResponse:
        """Queue an in-app toast for a user."""
        logger.info("Queueing toast for user %s", user_id)
        return self._store(
            user_id,
            {"kind": KIND_TOAST, "title": toast.title, "lines": list(toast.lines)},
            event_id,
        )
