"""In-process auth provider and document store.

Used for local development (``BACKEND=memory``) and tests. They follow the same
contracts as the Firebase adapters: ordered queries skip documents without the
order field, merges keep unspecified fields, and every write pushes a fresh
snapshot to the affected collection's subscribers.
"""

import secrets
import threading
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from structlog import get_logger

from goride.core.collaborators import (
    SERVER_TIMESTAMP,
    Direction,
    Document,
    ErrorCallback,
    Session,
    SnapshotCallback,
    bind_session,
    bound_session,
)
from goride.core.exceptions import AuthException, StoreException, SubscriptionException

logger = get_logger(__name__)


def _split_document_path(path: str) -> tuple[str, str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2 or len(parts) % 2:
        raise StoreException(f"Invalid document path: {path}")
    return "/".join(parts[:-1]), parts[-1]


def _normalize_collection_path(path: str) -> str:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts or len(parts) % 2 == 0:
        raise StoreException(f"Invalid collection path: {path}")
    return "/".join(parts)


class _Subscription:
    def __init__(
        self,
        store: "InMemoryDocumentStore",
        collection: str,
        order_by: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ):
        self.store = store
        self.collection = collection
        self.order_by = order_by
        self.direction = direction
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._detach(self)


class InMemoryDocumentStore:
    """Document store kept in a dict keyed by collection path."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: list[_Subscription] = []
        self._last_timestamp: datetime | None = None
        self._lock = threading.RLock()

    def subscribe(
        self,
        path: str,
        order_by: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> _Subscription:
        collection = _normalize_collection_path(path)
        subscription = _Subscription(self, collection, order_by, direction, on_snapshot, on_error)
        with self._lock:
            self._subscriptions.append(subscription)
            self._deliver(subscription)
        return subscription

    async def add(self, path: str, fields: Mapping[str, Any]) -> str:
        collection = _normalize_collection_path(path)
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = self._resolve(fields)
            self._publish(collection)
        return doc_id

    async def delete(self, path: str) -> None:
        collection, doc_id = _split_document_path(path)
        with self._lock:
            removed = self._collections.get(collection, {}).pop(doc_id, None)
            if removed is not None:
                self._publish(collection)

    async def upsert_merge(self, path: str, fields: Mapping[str, Any]) -> None:
        collection, doc_id = _split_document_path(path)
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            docs[doc_id] = {**docs.get(doc_id, {}), **self._resolve(fields)}
            self._publish(collection)

    async def get(self, path: str) -> Document | None:
        collection, doc_id = _split_document_path(path)
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            return Document(id=doc_id, path=f"{collection}/{doc_id}", data=dict(data))

    def fail_subscriptions(self, path: str, message: str) -> None:
        """Push an error to every live subscriber of the collection at ``path``."""
        collection = _normalize_collection_path(path)
        with self._lock:
            for subscription in self._live(collection):
                subscription.on_error(SubscriptionException(message))

    def _resolve(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: self._server_timestamp() if value is SERVER_TIMESTAMP else value
            for key, value in fields.items()
        }

    def _server_timestamp(self) -> datetime:
        # Strictly increasing so back-to-back writes keep their creation order
        now = datetime.now(UTC)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _live(self, collection: str) -> list[_Subscription]:
        return [s for s in self._subscriptions if s.active and s.collection == collection]

    def _publish(self, collection: str) -> None:
        for subscription in self._live(collection):
            self._deliver(subscription)

    def _deliver(self, subscription: _Subscription) -> None:
        docs = self._collections.get(subscription.collection, {})
        ordered = [
            (doc_id, data) for doc_id, data in docs.items() if subscription.order_by in data
        ]
        ordered.sort(
            key=lambda item: item[1][subscription.order_by],
            reverse=subscription.direction == Direction.DESCENDING,
        )
        snapshot = [
            Document(id=doc_id, path=f"{subscription.collection}/{doc_id}", data=dict(data))
            for doc_id, data in ordered
        ]
        subscription.on_snapshot(snapshot)

    def _detach(self, subscription: _Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)


class InMemoryAuthProvider:
    """Email/password accounts held in memory with opaque bearer tokens."""

    def __init__(self) -> None:
        self._accounts: dict[str, tuple[str, str]] = {}
        self._tokens: dict[str, Session] = {}

    def current_session(self) -> Session | None:
        return bound_session()

    async def sign_up(self, email: str, password: str) -> Session:
        key = email.lower()
        if key in self._accounts:
            raise AuthException("The email address is already in use by another account.")
        uid = uuid.uuid4().hex[:28]
        self._accounts[key] = (uid, password)
        logger.info("memory_account_created", uid=uid)
        return self._open_session(uid, email)

    async def sign_in(self, email: str, password: str) -> Session:
        account = self._accounts.get(email.lower())
        if account is None or not secrets.compare_digest(account[1], password):
            raise AuthException(
                "The supplied auth credential is incorrect, malformed or has expired."
            )
        return self._open_session(account[0], email)

    async def sign_out(self, session: Session | None = None) -> None:
        session = session or bound_session()
        bind_session(None)
        if session is not None and session.id_token:
            self._tokens.pop(session.id_token, None)
            logger.info("memory_token_revoked", uid=session.uid)

    async def verify_token(self, id_token: str) -> Session:
        session = self._tokens.get(id_token)
        if session is None:
            raise AuthException("Invalid ID token")
        bind_session(session)
        return session

    def _open_session(self, uid: str, email: str) -> Session:
        token = secrets.token_urlsafe(32)
        session = Session(uid=uid, email=email, id_token=token)
        self._tokens[token] = session
        bind_session(session)
        return session
