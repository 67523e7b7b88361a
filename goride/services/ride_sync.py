"""Live rides list kept in step with the user's rides collection.

The remote collection is the single source of truth. ``create`` and ``delete``
only send requests; the list changes when the subscription delivers the next
snapshot, which replaces the local sequence wholesale.
"""

import threading
from collections.abc import Callable, Sequence
from functools import partial

from pydantic import ValidationError
from structlog import get_logger

from goride.config import settings
from goride.core.collaborators import (
    SERVER_TIMESTAMP,
    Direction,
    Document,
    DocumentStore,
    SubscriptionHandle,
)
from goride.core.exceptions import (
    AppException,
    StoreException,
    SubscriptionException,
    UnauthorizedException,
    ValidationException,
)
from goride.schemas.rides import RideCreate, RideListState, RideRecord

logger = get_logger(__name__)

StateListener = Callable[[RideListState], None]


def rides_collection_path(uid: str) -> str:
    """Path of the rides sub-collection owned by ``uid``."""
    return f"{settings.users_collection}/{uid}/{settings.rides_collection}"


class RideListSynchronizer:
    """Mirror of one user's rides collection, newest first."""

    ORDER_FIELD = "createdAt"
    DEFAULT_SUBSCRIPTION_ERROR = "Failed to load rides"

    def __init__(self, store: DocumentStore):
        """Initialize synchronizer with the document store to mirror."""
        self.store = store
        self._state = RideListState()
        self._handle: SubscriptionHandle | None = None
        self._uid: str | None = None
        self._generation = 0
        self._listeners: list[StateListener] = []
        # Re-entrant: stores may deliver the first snapshot from inside subscribe()
        self._lock = threading.RLock()

    @property
    def state(self) -> RideListState:
        """Latest state. Read-only; replaced, never mutated."""
        return self._state

    @property
    def uid(self) -> str | None:
        """User the list belongs to, kept after a failed open until stop()."""
        return self._uid

    @property
    def is_active(self) -> bool:
        return self._handle is not None

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback for state changes and return its remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def start(self, uid: str) -> None:
        """
        Open the live rides subscription for ``uid``.

        Replaces a subscription held for another user. Calling it again for the
        active user does nothing; calling it after a failed open retries, keeping
        the listed rides and the error until a snapshot arrives.

        Raises:
            ValidationException: If uid is blank
        """
        if not uid or not uid.strip():
            raise ValidationException("User id is required")

        with self._lock:
            if self._handle is not None and self._uid == uid:
                return

            retry = self._uid == uid
            self._release()
            self._generation += 1
            generation = self._generation
            self._uid = uid
            if retry:
                self._replace(self._state.model_copy(update={"is_loading": True}))
            else:
                self._replace(RideListState(uid=uid, is_loading=True))

            path = rides_collection_path(uid)
            try:
                handle = self.store.subscribe(
                    path,
                    self.ORDER_FIELD,
                    Direction.DESCENDING,
                    partial(self._on_snapshot, generation),
                    partial(self._on_error, generation),
                )
            except AppException as e:
                logger.error("ride_subscription_open_failed", uid=uid, error=e.message)
                self._replace(
                    self._state.model_copy(
                        update={
                            "is_loading": False,
                            "error": e.message or self.DEFAULT_SUBSCRIPTION_ERROR,
                        }
                    )
                )
                self._notify(self._state)
                return

            # A listener may have called stop() during a synchronous first delivery
            if generation == self._generation:
                self._handle = handle
            else:
                handle.unsubscribe()

        logger.info("ride_subscription_started", uid=uid, path=path)
        self._notify(self._state)

    def stop(self) -> None:
        """Release the active subscription. Idempotent."""
        with self._lock:
            released = self._release()
            self._uid = None
            self._generation += 1
            changed = self._state.is_loading
            if changed:
                self._replace(self._state.model_copy(update={"is_loading": False}))

        if released:
            logger.info("ride_subscription_stopped", uid=self._state.uid)
        if changed:
            self._notify(self._state)

    async def create(self, pickup: str, drop: str) -> str:
        """
        Submit a new ride for the active user.

        The ride shows up through the next snapshot, not here.

        Returns:
            Id assigned by the store

        Raises:
            ValidationException: If pickup or drop is blank after trimming
            UnauthorizedException: If start() was not called for a user
            StoreException: If the store rejects the write
        """
        try:
            ride = RideCreate(pickup=pickup, drop=drop)
        except ValidationError as e:
            raise ValidationException("Please enter pickup and drop") from e

        uid = self._require_uid()
        try:
            ride_id = await self.store.add(
                rides_collection_path(uid),
                {"pickup": ride.pickup, "drop": ride.drop, self.ORDER_FIELD: SERVER_TIMESTAMP},
            )
        except AppException as e:
            logger.warning("ride_create_failed", uid=uid, error=e.message)
            raise StoreException(e.message or "Booking failed") from e

        logger.info("ride_created", uid=uid, ride_id=ride_id, still_active=self.uid == uid)
        return ride_id

    async def delete(self, ride_id: str) -> None:
        """
        Request deletion of a ride of the active user.

        Raises:
            ValidationException: If ride_id is blank
            UnauthorizedException: If start() was not called for a user
            StoreException: If the store rejects the delete
        """
        if not ride_id or not ride_id.strip():
            raise ValidationException("Ride id is required")

        uid = self._require_uid()
        try:
            await self.store.delete(f"{rides_collection_path(uid)}/{ride_id}")
        except AppException as e:
            logger.warning("ride_delete_failed", uid=uid, ride_id=ride_id, error=e.message)
            raise StoreException(e.message or "Delete failed") from e

        logger.info("ride_deleted", uid=uid, ride_id=ride_id)

    def _require_uid(self) -> str:
        uid = self.uid
        if uid is None:
            raise UnauthorizedException("No rides list open")
        return uid

    def _release(self) -> bool:
        handle, self._handle = self._handle, None
        if handle is None:
            return False
        handle.unsubscribe()
        return True

    def _on_snapshot(self, generation: int, documents: Sequence[Document]) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("ride_snapshot_ignored", generation=generation)
                return
            rides = tuple(RideRecord.from_document(doc) for doc in documents)
            new_state = RideListState(uid=self._state.uid, rides=rides)
            self._replace(new_state)

        logger.debug("ride_snapshot_applied", uid=new_state.uid, count=len(rides))
        self._notify(new_state)

    def _on_error(self, generation: int, error: SubscriptionException) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("ride_subscription_error_ignored", generation=generation)
                return
            message = error.message or self.DEFAULT_SUBSCRIPTION_ERROR
            new_state = self._state.model_copy(update={"is_loading": False, "error": message})
            self._replace(new_state)

        logger.warning("subscription_error", uid=new_state.uid, error=message)
        self._notify(new_state)

    def _replace(self, state: RideListState) -> None:
        self._state = state

    def _notify(self, state: RideListState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error("ride_state_listener_failed", error=str(e), exc_info=True)
