"""Cloud Firestore document store.

Handles the users/{uid} profile documents and users/{uid}/rides collections.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from firebase_admin import firestore
from structlog import get_logger

from goride.core.collaborators import (
    SERVER_TIMESTAMP,
    Direction,
    Document,
    ErrorCallback,
    SnapshotCallback,
)
from goride.core.exceptions import StoreException, SubscriptionException

logger = get_logger(__name__)

_DIRECTIONS = {
    Direction.ASCENDING: firestore.Query.ASCENDING,
    Direction.DESCENDING: firestore.Query.DESCENDING,
}


class FirestoreSubscription:
    """Wraps a Firestore watch so it can be released more than once."""

    def __init__(self, watch):
        self._watch = watch

    def unsubscribe(self) -> None:
        watch, self._watch = self._watch, None
        if watch is not None:
            watch.unsubscribe()


class FirestoreDocumentStore:
    """Service class for Firestore reads, writes and live queries."""

    def __init__(self, client=None):
        """Initialize store with a Firestore client (default app client if omitted)."""
        self.db = client if client is not None else firestore.client()

    @staticmethod
    def _to_document(snapshot) -> Document:
        return Document(
            id=snapshot.id,
            path=snapshot.reference.path,
            data=snapshot.to_dict() or {},
        )

    @staticmethod
    def _to_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: firestore.SERVER_TIMESTAMP if value is SERVER_TIMESTAMP else value
            for key, value in fields.items()
        }

    def subscribe(
        self,
        path: str,
        order_by: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> FirestoreSubscription:
        """
        Listen to an ordered collection query.

        Snapshot callbacks arrive on the SDK's watch thread. Errors raised while
        handling a snapshot are handed to ``on_error``; the SDK retries broken
        streams on its own.
        """

        def handle_snapshot(doc_snapshots, changes, read_time):
            try:
                documents = [self._to_document(doc) for doc in doc_snapshots]
            except Exception as e:
                logger.error("firestore_snapshot_decode_failed", path=path, error=str(e))
                on_error(SubscriptionException(str(e) or "Failed to read snapshot"))
                return
            on_snapshot(documents)

        try:
            query = self.db.collection(path).order_by(order_by, direction=_DIRECTIONS[direction])
            watch = query.on_snapshot(handle_snapshot)
        except Exception as e:
            logger.error("firestore_subscribe_failed", path=path, error=str(e))
            raise StoreException(str(e) or "Failed to subscribe") from e

        logger.info("firestore_listener_active", path=path, order_by=order_by)
        return FirestoreSubscription(watch)

    async def add(self, path: str, fields: Mapping[str, Any]) -> str:
        try:
            _, doc_ref = await asyncio.to_thread(
                self.db.collection(path).add, self._to_fields(fields)
            )
        except Exception as e:
            logger.error("firestore_add_failed", path=path, error=str(e))
            raise StoreException(str(e)) from e
        return doc_ref.id

    async def delete(self, path: str) -> None:
        try:
            await asyncio.to_thread(self.db.document(path).delete)
        except Exception as e:
            logger.error("firestore_delete_failed", path=path, error=str(e))
            raise StoreException(str(e)) from e

    async def upsert_merge(self, path: str, fields: Mapping[str, Any]) -> None:
        try:
            await asyncio.to_thread(self.db.document(path).set, self._to_fields(fields), merge=True)
        except Exception as e:
            logger.error("firestore_upsert_failed", path=path, error=str(e))
            raise StoreException(str(e)) from e

    async def get(self, path: str) -> Document | None:
        try:
            snapshot = await asyncio.to_thread(self.db.document(path).get)
        except Exception as e:
            logger.error("firestore_get_failed", path=path, error=str(e))
            raise StoreException(str(e)) from e

        if not snapshot.exists:
            return None
        return self._to_document(snapshot)
