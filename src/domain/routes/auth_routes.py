import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.core.dependencies import (
    get_auth_service,
    get_current_token,
    get_current_user,
    get_db_session,
    get_mailer,
)
from src.base.infra.mailer import Mailer, welcome_email
from src.domain.errors import AuthError
from src.domain.models.entities.user import User
from src.domain.models.user_schemas import (
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from src.domain.services.auth_service import AuthService

router = APIRouter(tags=["Auth"])
logger = logging.getLogger(__name__)


def _send_welcome(background: BackgroundTasks, mailer: Mailer, user: User) -> None:
    subject, body = welcome_email(user.username)
    background.add_task(mailer.send, user.email, subject, body)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(
    body: RegisterRequest,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
    mailer: Mailer = Depends(get_mailer),
):
    """Create an account and return it with its first bearer token."""
    try:
        user, token = await service.register(session, body)
    except AuthError as e:
        raise e.to_http_exception() from None

    _send_welcome(background, mailer, user)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """Exchange username and password for a new bearer token (one per device)."""
    try:
        user, token = await service.login(session, body)
    except AuthError as e:
        raise e.to_http_exception() from None

    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/auth/google", response_model=AuthResponse)
async def google_login(
    body: GoogleLoginRequest,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
    mailer: Mailer = Depends(get_mailer),
):
    """Sign in with a Google ID token; the account is created on first use."""
    try:
        user, token, created = await service.google_login(session, body.token)
    except AuthError as e:
        raise e.to_http_exception() from None

    if created:
        _send_welcome(background, mailer, user)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    user: User = Depends(get_current_user),
    token: str = Depends(get_current_token),
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """End the session of the presenting token only."""
    await service.logout(session, user, token)
    return MessageResponse(message="Logged out")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    """End every session of the current user, on all devices."""
    count = await service.logout_all(session, user)
    return MessageResponse(message=f"Logged out of {count} session(s)")
