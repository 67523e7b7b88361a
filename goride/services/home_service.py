"""Home screen state for signed-in users."""

import time
from collections.abc import Callable

from structlog import get_logger

from goride.config import settings
from goride.core.collaborators import DocumentStore, Session
from goride.schemas.rides import RideListState
from goride.schemas.users import ProfileResponse, UserProfile
from goride.services.profile_service import ProfileService
from goride.services.ride_sync import RideListSynchronizer

logger = get_logger(__name__)


class HomeSession:
    """Rides subscription and profile of one signed-in user."""

    def __init__(self, session: Session, store: DocumentStore):
        """Initialize home session for a signed-in user."""
        self.session = session
        self.rides = RideListSynchronizer(store)
        self.profiles = ProfileService(store)
        self.profile = UserProfile(
            uid=session.uid,
            display_name=self.profiles.default_display_name,
            email=session.email,
        )

    @property
    def uid(self) -> str:
        return self.session.uid

    async def open(self) -> None:
        """Start the rides subscription and load the profile once."""
        self.rides.start(self.uid)
        self.profile = await self.profiles.load(self.session)

    def resume(self) -> None:
        """Reopen the rides subscription if opening it failed earlier."""
        if not self.rides.is_active:
            logger.info("ride_subscription_retry", uid=self.uid)
            self.rides.start(self.uid)

    def close(self) -> None:
        """Stop the rides subscription."""
        self.rides.stop()

    async def book_ride(self, pickup: str, drop: str) -> str:
        return await self.rides.create(pickup, drop)

    async def delete_ride(self, ride_id: str) -> None:
        await self.rides.delete(ride_id)

    async def rename(self, name: str) -> UserProfile:
        self.profile = await self.profiles.update_name(self.session, name)
        return self.profile

    def ride_list(self) -> RideListState:
        return self.rides.state

    def overview(self) -> ProfileResponse:
        """Profile with the state and size of the current ride list."""
        state = self.rides.state
        return ProfileResponse(
            **self.profile.model_dump(),
            total_rides=len(state.rides),
            rides_loading=state.is_loading,
            rides_error=state.error,
        )


class HomeSessionRegistry:
    """
    At most one open home session per user.

    Sessions unused for ``idle_timeout`` seconds are closed the next time the
    registry is asked to open one, so a user who never logs out does not keep
    a live subscription forever.
    """

    def __init__(
        self,
        store: DocumentStore,
        idle_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize registry with the document store sessions will use."""
        self.store = store
        self.idle_timeout = (
            idle_timeout if idle_timeout is not None else settings.home_session_idle_seconds
        )
        self.clock = clock
        self._sessions: dict[str, HomeSession] = {}
        self._last_used: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, uid: str) -> HomeSession | None:
        return self._sessions.get(uid)

    async def open(self, session: Session) -> HomeSession:
        """Return the user's home session, opening it on first use."""
        self.evict_idle(exclude=session.uid)
        self._last_used[session.uid] = self.clock()

        home = self._sessions.get(session.uid)
        if home is not None:
            home.session = session
            home.resume()
            return home

        home = HomeSession(session, self.store)
        self._sessions[session.uid] = home
        await home.open()
        logger.info("home_session_opened", uid=session.uid, open_sessions=len(self._sessions))
        return home

    def evict_idle(self, exclude: str | None = None) -> list[str]:
        """Close sessions idle for longer than ``idle_timeout`` and return their uids."""
        if self.idle_timeout <= 0:
            return []
        cutoff = self.clock() - self.idle_timeout
        idle = [
            uid
            for uid, last_used in self._last_used.items()
            if last_used < cutoff and uid != exclude
        ]
        for uid in idle:
            logger.info("home_session_idle", uid=uid)
            self.close(uid)
        return idle

    def close(self, uid: str) -> None:
        """Close the user's home session. Unknown users are ignored."""
        self._last_used.pop(uid, None)
        home = self._sessions.pop(uid, None)
        if home is None:
            return
        home.close()
        logger.info("home_session_closed", uid=uid, open_sessions=len(self._sessions))

    def close_all(self) -> None:
        for uid in list(self._sessions):
            self.close(uid)
