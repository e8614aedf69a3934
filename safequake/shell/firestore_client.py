"""Firestore Client - Imperative Shell.

This module handles persistence of users, the advice catalog, Telegram
subscribers and per-user seismic event records. Uses Google Cloud Firestore.

All I/O is contained here; parsing and business logic are in the core module.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from safequake.core.advice import Advice, order_catalog, parse_advice
from safequake.core.config import FirestoreCollections
from safequake.core.seismic_event import SeismicEvent, build_event_record, record_document_id
from safequake.core.user import User, parse_user


logger = logging.getLogger(__name__)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collections: Collection names
    """
    project_id: str | None = None
    database: str | None = None
    collections: FirestoreCollections = field(default_factory=FirestoreCollections)


@dataclass
class CreateResult:
    """Outcome of creating a document.

    Attributes:
        created: True if a new document was written
        document_id: Id of the new (or conflicting) document
        conflict: True if a document with that id already existed
        error: Error message if the write failed for another reason
    """
    created: bool
    document_id: str | None = None
    conflict: bool = False
    error: str | None = None


def _with_id(doc: Any) -> dict[str, Any]:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


class FirestoreClient:
    """Document access for the SafeQuake collections.

    This is part of the imperative shell - it handles database I/O.

    The generic document methods raise Firestore errors to the caller (the
    REST API maps them to HTTP errors). The flow helpers below them log
    failures and return empty results, so one bad read never stops a poll.
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def collections(self) -> FirestoreCollections:
        return self.config.collections

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    # Generic document access

    def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """Fetch every document of a collection, each with its ``id``."""
        return [_with_id(doc) for doc in self.client.collection(collection).stream()]

    def get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None if it does not exist."""
        doc = self.client.collection(collection).document(document_id).get()
        if not doc.exists:
            return None
        return _with_id(doc)

    def create_document(
        self,
        collection: str,
        data: dict[str, Any],
        document_id: str | None = None,
    ) -> CreateResult:
        """Create a document.

        With an explicit ``document_id`` the write fails if the document
        already exists; the conflict is reported instead of raised.

        Args:
            collection: Collection name
            data: Document fields
            document_id: Document id (None to let Firestore choose one)

        Returns:
            CreateResult
        """
        payload = dict(data)
        payload.setdefault("createdAt", datetime.now(timezone.utc))

        collection_ref = self.client.collection(collection)
        doc_ref = collection_ref.document(document_id) if document_id else collection_ref.document()

        try:
            doc_ref.create(payload)
        except gcp_exceptions.Conflict:
            logger.info("Document %s/%s already exists", collection, doc_ref.id)
            return CreateResult(created=False, document_id=doc_ref.id, conflict=True)

        return CreateResult(created=True, document_id=doc_ref.id)

    def update_document(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
    ) -> bool:
        """Update fields of an existing document.

        Returns:
            False if the document does not exist
        """
        payload = dict(fields)
        payload["updatedAt"] = datetime.now(timezone.utc)

        try:
            self.client.collection(collection).document(document_id).update(payload)
        except gcp_exceptions.NotFound:
            return False
        return True

    def delete_document(self, collection: str, document_id: str) -> bool:
        """Delete a document.

        Returns:
            False if the document does not exist
        """
        doc_ref = self.client.collection(collection).document(document_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    # Proximity flow

    def get_users(self) -> list[User]:
        """Fetch and parse every registered user.

        This method performs database I/O.

        Returns:
            Parsed users (empty list on error)
        """
        logger.info("Fetching users from Firestore")

        try:
            users = [
                parse_user(doc["id"], doc)
                for doc in self.list_documents(self.collections.users)
            ]
        except Exception as e:
            logger.error("Failed to fetch users: %s", str(e))
            return []

        logger.info("Fetched %d users", len(users))
        return users

    def get_advice_catalog(self) -> list[Advice]:
        """Fetch the advice catalog ordered by magnitude band.

        Returns:
            Ordered advices (empty list on error; alerts go out without advice)
        """
        try:
            docs = self.list_documents(self.collections.advices)
        except Exception as e:
            logger.error("Failed to fetch advice catalog: %s", str(e))
            return []

        return order_catalog([parse_advice(doc["id"], doc) for doc in docs])

    def get_telegram_subscribers(self) -> list[int]:
        """Fetch the chat ids of every Telegram subscriber.

        Returns:
            Unique chat ids in storage order (empty list on error)
        """
        try:
            docs = self.list_documents(self.collections.telegram_users)
        except Exception as e:
            logger.error("Failed to fetch Telegram subscribers: %s", str(e))
            return []

        chat_ids: list[int] = []
        for doc in docs:
            try:
                chat_id = int(doc.get("idTelegram"))
            except (TypeError, ValueError):
                logger.warning("Skipping subscriber %s with invalid idTelegram", doc["id"])
                continue
            if chat_id not in chat_ids:
                chat_ids.append(chat_id)
        return chat_ids

    def add_telegram_subscriber(self, chat_id: int) -> CreateResult:
        """Register a Telegram chat id.

        The chat id is the document id, so registering twice yields a
        conflict rather than a duplicate.
        """
        try:
            return self.create_document(
                self.collections.telegram_users,
                {"idTelegram": chat_id},
                document_id=str(chat_id),
            )
        except Exception as e:
            logger.error("Failed to register Telegram subscriber %s: %s", chat_id, str(e))
            return CreateResult(created=False, error=str(e))

    def record_seismic_event(
        self,
        event: SeismicEvent,
        user_id: str,
        distance_km: float,
    ) -> CreateResult:
        """Persist an event close to a user.

        The document id is ``{user_id}_{event_id}``; a second write for the
        same pair is reported as a conflict.

        Returns:
            CreateResult
        """
        try:
            return self.create_document(
                self.collections.seismic_events,
                build_event_record(event, user_id, distance_km),
                document_id=record_document_id(user_id, event.id),
            )
        except Exception as e:
            logger.error(
                "Failed to record event %s for user %s: %s",
                event.id,
                user_id,
                str(e),
            )
            return CreateResult(created=False, error=str(e))
