"""Firebase Admin SDK initialization and utilities."""

import asyncio
import json
import os

import firebase_admin
from firebase_admin import auth, credentials, firestore
from structlog import get_logger

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> firebase_admin.App:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.

    Looks for Firebase credentials in order:
    1. firebase_config_json parameter
    2. firebase_credentials_path parameter
    3. Default application credentials

    Returns:
        The initialized Firebase app
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("firebase_already_initialized")
        return _firebase_app

    try:
        cred = None

        if firebase_config_json:
            logger.info("firebase_init_from_json")
            cred = credentials.Certificate(json.loads(firebase_config_json))
        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("firebase_init_from_file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        if cred:
            _firebase_app = firebase_admin.initialize_app(cred)
        else:
            _firebase_app = firebase_admin.initialize_app()
            logger.info("firebase_init_default_credentials")

    except Exception as e:
        logger.error("firebase_init_failed", error=str(e))
        raise

    return _firebase_app


def get_firebase_app() -> firebase_admin.App:
    """
    Get the Firebase app instance.

    Raises:
        RuntimeError: If Firebase is not initialized
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase not initialized. Call initialize_firebase() first.")
    return _firebase_app


def get_firestore_client():
    """Return a Firestore client bound to the initialized app."""
    return firestore.client(app=get_firebase_app())


async def verify_firebase_token(id_token: str, check_revoked: bool = True) -> dict:
    """
    Verify a Firebase ID token.

    Args:
        id_token: Firebase ID token issued at sign-in
        check_revoked: Also reject tokens issued before the user's last sign-out

    Returns:
        Decoded token containing user information

    Raises:
        ValueError: If token is invalid, expired, revoked, or cannot be checked
    """
    try:
        # Key fetch and signature check block, keep them off the event loop
        decoded_token = await asyncio.to_thread(
            auth.verify_id_token,
            id_token,
            app=get_firebase_app(),
            check_revoked=check_revoked,
            clock_skew_seconds=10,
        )

        logger.info(
            "firebase_token_verified",
            uid=decoded_token.get("uid"),
            email=decoded_token.get("email"),
        )

        return decoded_token

    except auth.InvalidIdTokenError as e:
        logger.warning("firebase_token_invalid", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}") from e
    except Exception as e:
        logger.error("firebase_token_verification_failed", error=str(e))
        raise ValueError(f"Token verification failed: {e!s}") from e


async def revoke_firebase_tokens(uid: str) -> None:
    """
    Revoke every refresh token of a user.

    ID tokens issued before this call fail verification with ``check_revoked``.

    Raises:
        ValueError: If the revocation request fails
    """
    try:
        await asyncio.to_thread(auth.revoke_refresh_tokens, uid, app=get_firebase_app())
    except Exception as e:
        logger.error("firebase_token_revocation_failed", uid=uid, error=str(e))
        raise ValueError(f"Token revocation failed: {e!s}") from e

    logger.info("firebase_tokens_revoked", uid=uid)
