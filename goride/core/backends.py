"""Selection of the auth provider and document store implementations."""

from structlog import get_logger

from goride.config import Settings
from goride.core.collaborators import AuthProvider, DocumentStore

logger = get_logger(__name__)


def build_collaborators(config: Settings) -> tuple[AuthProvider, DocumentStore]:
    """
    Create the collaborators named by ``config.backend``.

    Returns:
        Tuple of (auth provider, document store)
    """
    if config.backend == "memory":
        from goride.stores.memory import InMemoryAuthProvider, InMemoryDocumentStore

        logger.info("backend_selected", backend="memory")
        return InMemoryAuthProvider(), InMemoryDocumentStore()

    from goride.core.firebase import get_firestore_client, initialize_firebase
    from goride.stores.firebase_auth import FirebaseAuthProvider
    from goride.stores.firestore import FirestoreDocumentStore

    initialize_firebase(config.firebase_credentials_path, config.firebase_config_json)
    logger.info("backend_selected", backend="firebase")
    return (
        FirebaseAuthProvider(
            api_key=config.firebase_web_api_key,
            base_url=config.firebase_auth_base_url,
            timeout=config.auth_timeout_seconds,
        ),
        FirestoreDocumentStore(get_firestore_client()),
    )
