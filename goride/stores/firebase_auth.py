"""Firebase email/password authentication.

Sign-up and sign-in go through the Identity Toolkit REST API, since the Admin
SDK cannot check passwords. ID tokens are verified with the Admin SDK.
"""

import httpx
from structlog import get_logger

from goride.config import settings
from goride.core.collaborators import Session, bind_session, bound_session
from goride.core.exceptions import AuthException
from goride.core.firebase import revoke_firebase_tokens, verify_firebase_token

logger = get_logger(__name__)


class FirebaseAuthProvider:
    """Auth provider backed by Firebase Authentication."""

    SIGN_UP_ENDPOINT = "accounts:signUp"
    SIGN_IN_ENDPOINT = "accounts:signInWithPassword"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize provider with the project's web API key."""
        self.api_key = api_key if api_key is not None else settings.firebase_web_api_key
        self.base_url = (base_url or settings.firebase_auth_base_url).rstrip("/")
        self.timeout = timeout or settings.auth_timeout_seconds
        self.transport = transport

    def current_session(self) -> Session | None:
        return bound_session()

    async def sign_up(self, email: str, password: str) -> Session:
        return await self._password_request(self.SIGN_UP_ENDPOINT, email, password)

    async def sign_in(self, email: str, password: str) -> Session:
        return await self._password_request(self.SIGN_IN_ENDPOINT, email, password)

    async def sign_out(self, session: Session | None = None) -> None:
        """Revoke the user's refresh tokens so outstanding ID tokens stop verifying."""
        session = session or bound_session()
        bind_session(None)
        if session is None:
            return
        try:
            await revoke_firebase_tokens(session.uid)
        except ValueError as e:
            raise AuthException(str(e)) from e

    async def verify_token(self, id_token: str) -> Session:
        try:
            decoded = await verify_firebase_token(id_token)
        except ValueError as e:
            raise AuthException(str(e)) from e
        session = Session(uid=decoded["uid"], email=decoded.get("email"), id_token=id_token)
        bind_session(session)
        return session

    async def _password_request(self, endpoint: str, email: str, password: str) -> Session:
        if not self.api_key:
            raise AuthException("FIREBASE_WEB_API_KEY is not configured")

        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/{endpoint}",
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.warning("firebase_auth_unreachable", endpoint=endpoint, error=str(e))
            raise AuthException(f"Authentication service unavailable: {e!s}") from e

        if response.status_code != 200:
            message = self._error_message(response)
            logger.info("firebase_auth_rejected", endpoint=endpoint, error=message)
            raise AuthException(message)

        data = response.json()
        session = Session(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data.get("idToken"),
        )
        bind_session(session)
        return session

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return f"Authentication failed ({response.status_code})"
