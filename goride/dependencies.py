"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from goride.core.collaborators import AuthProvider, Session
from goride.core.exceptions import AuthException, UnauthorizedException
from goride.services.auth_service import AuthService
from goride.services.home_service import HomeSession, HomeSessionRegistry

# Security
security = HTTPBearer(auto_error=False)


def get_auth_provider(request: Request) -> AuthProvider:
    """Auth provider wired in at startup."""
    return request.app.state.auth_provider


def get_home_registry(request: Request) -> HomeSessionRegistry:
    """Registry of open home sessions."""
    return request.app.state.home_registry


def get_auth_service(
    provider: Annotated[AuthProvider, Depends(get_auth_provider)],
) -> AuthService:
    return AuthService(provider)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> Session:
    """
    Resolve the bearer token to a signed-in session.

    Raises:
        UnauthorizedException: If the token is missing or rejected
    """
    if credentials is None:
        raise UnauthorizedException("Not signed in")

    try:
        return await auth_service.verify_token(credentials.credentials)
    except AuthException as e:
        raise UnauthorizedException(e.message) from e


async def get_home_session(
    session: Annotated[Session, Depends(get_current_session)],
    registry: Annotated[HomeSessionRegistry, Depends(get_home_registry)],
) -> HomeSession:
    """Home session of the signed-in user, opened on first use."""
    return await registry.open(session)


# Type aliases for dependency injection
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
HomeRegistry = Annotated[HomeSessionRegistry, Depends(get_home_registry)]
CurrentHome = Annotated[HomeSession, Depends(get_home_session)]
