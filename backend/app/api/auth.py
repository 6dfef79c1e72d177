"""Authentication API endpoints and the authorization gate for protected routes."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import get_db, settings
from app.schemas.auth import CurrentUser, LoginRequest, LoginResponse, SessionUser
from app.schemas.common import MessageResponse
from app.services.auth import AuthService
from app.services.broadcaster import get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(db)


def get_session_token(request: Request) -> str | None:
    """Extract the session token from the cookie, falling back to a Bearer header."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]  # Remove "Bearer " prefix
    return None


async def get_current_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """Authorization gate: resolve the caller's identity from their session token.

    The identity and raw token are also stored on ``request.state`` for
    downstream handlers.
    """
    token = get_session_token(request)
    user = await auth_service.authorize(token)
    request.state.user = user
    request.state.token = token
    return user


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=True,
        samesite="none",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=True,
        samesite="none",
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and start a session.

    The session token is returned in the body and set as an http-only cookie.
    A caller whose cookie still holds a live session is refused.
    """
    existing_token = request.cookies.get(settings.session_cookie_name)
    user, token = await auth_service.login(data, existing_token=existing_token)
    set_session_cookie(response, token)
    return LoginResponse(
        data=SessionUser(id=user.id, email=user.email, name=user.name),
        token=token,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    current_user: CurrentUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Log out the current user.

    Blacklists the session token so it cannot be reused for the remainder of
    its lifetime, and clears the session cookie. Realtime connections opened
    with the token drop back to anonymous listeners.
    """
    await auth_service.logout(request.state.token)
    await get_broadcaster().deauthenticate(request.state.token)
    clear_session_cookie(response)
    logger.info(f"User logged out: {current_user.email}", extra={"user_id": str(current_user.user_id)})
    return MessageResponse(message="You have successfully logged out")
