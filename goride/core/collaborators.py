"""Interfaces of the external services GoRide depends on.

The authentication provider and the document store are injected wherever they
are needed, so the Firebase adapters and the in-memory ones are interchangeable.
"""

from collections.abc import Callable, Mapping, Sequence
from contextvars import ContextVar
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from goride.core.exceptions import SubscriptionException


class Direction(str, Enum):
    """Sort direction for ordered queries."""

    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


class _ServerTimestamp:
    """Sentinel asking the store to fill in its own commit time."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class Session(BaseModel):
    """Signed-in user as reported by the authentication provider."""

    uid: str = Field(..., min_length=1)
    email: str | None = None
    id_token: str | None = None


# Signed-in session of the running request; each task sees its own copy
_bound_session: ContextVar[Session | None] = ContextVar("goride_session", default=None)


def bind_session(session: Session | None) -> None:
    """Attach ``session`` to the current request context."""
    _bound_session.set(session)


def bound_session() -> Session | None:
    """Session attached to the current request context, if any."""
    return _bound_session.get()


class Document(BaseModel):
    """A single document read from the store."""

    id: str
    path: str
    data: dict[str, Any] = Field(default_factory=dict)


SnapshotCallback = Callable[[Sequence[Document]], None]
ErrorCallback = Callable[[SubscriptionException], None]


class SubscriptionHandle(Protocol):
    """Cancellable handle returned by :meth:`DocumentStore.subscribe`."""

    def unsubscribe(self) -> None:
        """Stop delivering callbacks. Safe to call more than once."""
        ...


class DocumentStore(Protocol):
    """Document database holding per-user collections."""

    def subscribe(
        self,
        path: str,
        order_by: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        """Open a live, ordered query over the collection at ``path``."""
        ...

    async def add(self, path: str, fields: Mapping[str, Any]) -> str:
        """Create a document in the collection at ``path`` and return its id."""
        ...

    async def delete(self, path: str) -> None:
        """Delete the document at ``path``. Missing documents are not an error."""
        ...

    async def upsert_merge(self, path: str, fields: Mapping[str, Any]) -> None:
        """Create the document at ``path`` or merge ``fields`` into it."""
        ...

    async def get(self, path: str) -> Document | None:
        """Read the document at ``path``, or ``None`` if it does not exist."""
        ...


class AuthProvider(Protocol):
    """Email/password authentication service."""

    def current_session(self) -> Session | None:
        """Return the session signed in or verified in the current request, if any."""
        ...

    async def sign_in(self, email: str, password: str) -> Session:
        """Sign in an existing account."""
        ...

    async def sign_up(self, email: str, password: str) -> Session:
        """Create an account and sign it in."""
        ...

    async def sign_out(self, session: Session | None = None) -> None:
        """Revoke ``session`` (default: the current one) so its token stops verifying."""
        ...

    async def verify_token(self, id_token: str) -> Session:
        """Resolve a bearer ID token to the session it belongs to."""
        ...
