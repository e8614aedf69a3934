"""State Store - Imperative Shell.

Persists the poller's state in a Firestore collection:
- the notified marker (the last event processed by the proximity flow);
- per-user lists of event ids already recorded.

The store exposes plain get/set/clear on keyed documents plus typed
helpers for the two kinds of state.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from google.cloud import firestore

from safequake.core.dedup import NotifiedMarker


logger = logging.getLogger(__name__)


MARKER_KEY = "notified_marker"
POSTED_KEY_PREFIX = "posted_"


class StateStoreError(Exception):
    """Raised when state cannot be read or written."""


class FirestoreStateStore:
    """Keyed state documents in one Firestore collection.

    Reads raise StateStoreError instead of returning an empty default,
    because an empty marker would re-notify the latest event.
    """

    def __init__(
        self,
        client: firestore.Client | None = None,
        collection: str = "safequake_state",
        project_id: str | None = None,
        database: str | None = None,
    ) -> None:
        """Initialize the state store.

        Args:
            client: Existing Firestore client (created lazily if None)
            collection: Collection holding the state documents
            project_id: GCP project ID (None for default)
            database: Firestore database name (None for default)
        """
        self.collection = collection
        self.project_id = project_id
        self.database = database
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.project_id:
                kwargs['project'] = self.project_id
            if self.database:
                kwargs['database'] = self.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _doc_ref(self, key: str) -> Any:
        return self.client.collection(self.collection).document(key)

    def get(self, key: str) -> dict[str, Any] | None:
        """Read a state document.

        Returns:
            Document fields, or None if the key was never set

        Raises:
            StateStoreError: If the read fails
        """
        try:
            doc = self._doc_ref(key).get()
        except Exception as e:
            raise StateStoreError(f"Failed to read state '{key}': {e}") from e

        if not doc.exists:
            return None
        return doc.to_dict()

    def set(self, key: str, value: dict[str, Any]) -> bool:
        """Overwrite a state document.

        Returns:
            True if the write succeeded
        """
        payload = dict(value)
        payload["updated_at"] = datetime.now(timezone.utc)

        try:
            self._doc_ref(key).set(payload)
        except Exception as e:
            logger.error("Failed to write state '%s': %s", key, str(e))
            return False
        return True

    def clear(self, key: str) -> bool:
        """Delete a state document.

        Returns:
            True if the delete succeeded
        """
        try:
            self._doc_ref(key).delete()
        except Exception as e:
            logger.error("Failed to clear state '%s': %s", key, str(e))
            return False
        return True

    # Notified marker

    def get_marker(self) -> NotifiedMarker | None:
        """Read the notified marker, or None if nothing was notified yet."""
        data = self.get(MARKER_KEY)
        if not data or not data.get("event_key"):
            return None
        return NotifiedMarker(
            event_key=data["event_key"],
            snapshot=data.get("snapshot") or {},
        )

    def set_marker(self, marker: NotifiedMarker) -> bool:
        logger.info("Advancing notified marker to %s", marker.event_key)
        return self.set(MARKER_KEY, {
            "event_key": marker.event_key,
            "snapshot": marker.snapshot,
        })

    def clear_marker(self) -> bool:
        return self.clear(MARKER_KEY)

    # Posted-event lists

    def get_posted_ids(self, user_id: str) -> list[str]:
        """Event ids already recorded for a user, oldest first."""
        data = self.get(f"{POSTED_KEY_PREFIX}{user_id}")
        if not data:
            return []
        return [str(i) for i in data.get("ids") or []]

    def set_posted_ids(self, user_id: str, ids: list[str]) -> bool:
        return self.set(f"{POSTED_KEY_PREFIX}{user_id}", {"ids": list(ids)})

    def clear_posted_ids(self, user_id: str) -> bool:
        return self.clear(f"{POSTED_KEY_PREFIX}{user_id}")
