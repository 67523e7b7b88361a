"""Authentication endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials

from goride.core.collaborators import Session
from goride.dependencies import AuthServiceDep, CurrentSession, HomeRegistry, security
from goride.schemas.auth import LoginRequest, SessionResponse, SignUpRequest, StartRouteResponse

router = APIRouter()


def _session_response(session: Session) -> SessionResponse:
    return SessionResponse(uid=session.uid, email=session.email, id_token=session.id_token)


@router.post(
    "/signup",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an email/password account",
)
async def sign_up(request: SignUpRequest, auth_service: AuthServiceDep) -> SessionResponse:
    """
    Create an account and sign it in.

    Raises:
        ValidationException: If the credentials fail local checks
        AuthException: If the provider refuses the account (message verbatim)
    """
    session = await auth_service.sign_up(
        str(request.email), request.password, request.confirm_password
    )
    return _session_response(session)


@router.post(
    "/login",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in with email and password",
)
async def login(request: LoginRequest, auth_service: AuthServiceDep) -> SessionResponse:
    """Sign in an existing account and return its bearer token."""
    session = await auth_service.sign_in(str(request.email), request.password)
    return _session_response(session)


@router.get(
    "/start",
    response_model=StartRouteResponse,
    summary="Splash screen routing decision",
)
async def start_route(
    auth_service: AuthServiceDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> StartRouteResponse:
    """Tell the client whether to open the home screen or the login screen."""
    if credentials is None:
        return StartRouteResponse(route=auth_service.LOGIN_ROUTE)

    route, session = await auth_service.initial_route(credentials.credentials)
    return StartRouteResponse(
        route=route,
        session=_session_response(session) if session else None,
    )


@router.get("/session", response_model=SessionResponse, summary="Current session")
async def current_session(session: CurrentSession) -> SessionResponse:
    return _session_response(session)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out and release the rides subscription",
)
async def logout(
    session: CurrentSession,
    registry: HomeRegistry,
    auth_service: AuthServiceDep,
) -> None:
    """Stop the user's rides subscription and revoke the bearer token."""
    registry.close(session.uid)
    await auth_service.sign_out(session)
