from collections.abc import AsyncGenerator, Sequence
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from goride.core.collaborators import Document
from goride.core.exceptions import SubscriptionException
from goride.main import app
from goride.services.home_service import HomeSessionRegistry
from goride.stores.memory import InMemoryAuthProvider, InMemoryDocumentStore

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def ride_doc(ride_id: str, pickup: str, drop: str, minutes: int = 0, uid: str = "u1") -> Document:
    """Ride document as a store would deliver it."""
    return Document(
        id=ride_id,
        path=f"users/{uid}/rides/{ride_id}",
        data={"pickup": pickup, "drop": drop, "createdAt": BASE_TIME + timedelta(minutes=minutes)},
    )


class RecordingHandle:
    def __init__(self):
        self.unsubscribe_calls = 0

    def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1


class RecordingStore:
    """Store double that records calls and lets tests push snapshots by hand.

    Callbacks stay reachable after unsubscribe so late deliveries can be
    simulated.
    """

    def __init__(self):
        self.subscriptions: list[dict] = []
        self.writes: list[tuple] = []

    def subscribe(self, path, order_by, direction, on_snapshot, on_error):
        handle = RecordingHandle()
        self.subscriptions.append(
            {
                "path": path,
                "order_by": order_by,
                "direction": direction,
                "on_snapshot": on_snapshot,
                "on_error": on_error,
                "handle": handle,
            }
        )
        return handle

    @property
    def latest(self) -> dict:
        return self.subscriptions[-1]

    def emit(self, documents: Sequence[Document], index: int = -1) -> None:
        self.subscriptions[index]["on_snapshot"](list(documents))

    def emit_error(self, message: str, index: int = -1) -> None:
        self.subscriptions[index]["on_error"](SubscriptionException(message))

    async def add(self, path, fields):
        self.writes.append(("add", path, dict(fields)))
        return f"ride{len(self.writes)}"

    async def delete(self, path):
        self.writes.append(("delete", path))

    async def upsert_merge(self, path, fields):
        self.writes.append(("upsert_merge", path, dict(fields)))

    async def get(self, path):
        self.writes.append(("get", path))
        return None


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def memory_auth() -> InMemoryAuthProvider:
    return InMemoryAuthProvider()


@pytest_asyncio.fixture
async def client(
    memory_auth: InMemoryAuthProvider, memory_store: InMemoryDocumentStore
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to in-memory collaborators."""
    registry = HomeSessionRegistry(memory_store)
    app.state.auth_provider = memory_auth
    app.state.document_store = memory_store
    app.state.home_registry = registry

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    registry.close_all()
    app.state.auth_provider = None
    app.state.document_store = None
    app.state.home_registry = None


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient) -> dict:
    """Sign up a rider and return bearer headers for it."""
    response = await client.post(
        "/api/v1/auth/signup",
        json={
            "email": "rider@goride.app",
            "password": "secret123",
            "confirm_password": "secret123",
        },
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['id_token']}"}

