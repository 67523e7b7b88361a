"""Profile service for the users/{uid} document."""

from structlog import get_logger

from goride.config import settings
from goride.core.collaborators import SERVER_TIMESTAMP, DocumentStore, Session
from goride.core.exceptions import AppException, StoreException, ValidationException
from goride.schemas.users import UserProfile

logger = get_logger(__name__)


def profile_document_path(uid: str) -> str:
    """Path of the profile document owned by ``uid``."""
    return f"{settings.users_collection}/{uid}"


class ProfileService:
    """Service for reading and editing the user profile."""

    def __init__(self, store: DocumentStore, default_display_name: str | None = None):
        """Initialize service with the document store."""
        self.store = store
        self.default_display_name = default_display_name or settings.default_display_name

    async def load(self, session: Session) -> UserProfile:
        """
        Read the profile once.

        Falls back to the default display name when no name is stored or the
        read fails.
        """
        profile = UserProfile(
            uid=session.uid,
            display_name=self.default_display_name,
            email=session.email,
        )

        try:
            doc = await self.store.get(profile_document_path(session.uid))
        except AppException as e:
            logger.warning("profile_load_failed", uid=session.uid, error=e.message)
            return profile

        name = doc.data.get("name") if doc else None
        if isinstance(name, str) and name.strip():
            profile = profile.model_copy(update={"display_name": name})

        return profile

    async def update_name(self, session: Session, name: str) -> UserProfile:
        """
        Merge a new display name into the profile document.

        Other fields already stored on the document are left untouched.

        Raises:
            ValidationException: If the name is blank
            StoreException: If the write fails
        """
        clean = name.strip()
        if not clean:
            raise ValidationException("Name cannot be empty")

        fields = {"name": clean, "updatedAt": SERVER_TIMESTAMP}
        if session.email:
            fields["email"] = session.email

        try:
            await self.store.upsert_merge(profile_document_path(session.uid), fields)
        except AppException as e:
            logger.warning("profile_update_failed", uid=session.uid, error=e.message)
            raise StoreException(e.message or "Update failed") from e

        logger.info("profile_updated", uid=session.uid)
        return UserProfile(uid=session.uid, display_name=clean, email=session.email)
