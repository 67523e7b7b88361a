"""Authentication service for email/password accounts."""

from email_validator import EmailNotValidError, validate_email
from structlog import get_logger

from goride.config import settings
from goride.core.collaborators import AuthProvider, Session
from goride.core.exceptions import AppException, AuthException, ValidationException

logger = get_logger(__name__)


class AuthService:
    """Validates credentials locally, then delegates to the auth provider."""

    HOME_ROUTE = "home"
    LOGIN_ROUTE = "login"

    def __init__(self, provider: AuthProvider, min_password_length: int | None = None):
        """Initialize auth service with an auth provider."""
        self.provider = provider
        self.min_password_length = min_password_length or settings.min_password_length

    def validate_credentials(
        self, email: str, password: str, confirm_password: str | None = None
    ) -> str:
        """
        Check credentials before anything is sent to the provider.

        Returns:
            The trimmed email

        Raises:
            ValidationException: With the message shown to the user
        """
        email = email.strip()
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationException("Please enter a valid email.") from e

        if len(password) < self.min_password_length:
            raise ValidationException(
                f"Password must be at least {self.min_password_length} characters."
            )

        if confirm_password is not None and password != confirm_password:
            raise ValidationException("Passwords do not match.")

        return email

    async def sign_up(self, email: str, password: str, confirm_password: str) -> Session:
        """
        Create an account.

        Raises:
            ValidationException: If the credentials are rejected locally
            AuthException: If the provider rejects the sign-up
        """
        email = self.validate_credentials(email, password, confirm_password)
        try:
            session = await self.provider.sign_up(email, password)
        except AppException as e:
            logger.info("sign_up_rejected", email=email, error=e.message)
            raise AuthException(e.message or "Signup failed") from e

        logger.info("sign_up_succeeded", uid=session.uid)
        return session

    async def sign_in(self, email: str, password: str) -> Session:
        """
        Sign in an existing account.

        Raises:
            ValidationException: If the credentials are rejected locally
            AuthException: If the provider rejects the sign-in
        """
        email = self.validate_credentials(email, password)
        try:
            session = await self.provider.sign_in(email, password)
        except AppException as e:
            logger.info("sign_in_rejected", email=email, error=e.message)
            raise AuthException(e.message or "Login failed") from e

        logger.info("sign_in_succeeded", uid=session.uid)
        return session

    async def sign_out(self, session: Session | None = None) -> None:
        """
        Sign out ``session``, or the current one, and revoke its token.

        Raises:
            AuthException: If the provider cannot revoke the token
        """
        try:
            await self.provider.sign_out(session)
        except AppException as e:
            raise AuthException(e.message or "Logout failed") from e
        logger.info("signed_out", uid=session.uid if session else None)

    def current_session(self) -> Session | None:
        """Return the session signed in or verified in this request, if any."""
        return self.provider.current_session()

    async def verify_token(self, id_token: str) -> Session:
        """
        Resolve a bearer token to a session.

        Raises:
            AuthException: If the token is not accepted
        """
        try:
            return await self.provider.verify_token(id_token)
        except AppException as e:
            raise AuthException(e.message or "Invalid token") from e

    async def initial_route(self, id_token: str | None = None) -> tuple[str, Session | None]:
        """
        Decide where the client lands after the splash screen.

        Returns:
            ("home", session) when a session is found, otherwise ("login", None)
        """
        session = None
        if id_token:
            try:
                session = await self.verify_token(id_token)
            except AuthException:
                session = None
        else:
            session = self.current_session()

        if session is None:
            return self.LOGIN_ROUTE, None
        return self.HOME_ROUTE, session
