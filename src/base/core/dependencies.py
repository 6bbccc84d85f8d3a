from typing import AsyncIterator

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.infra.mailer import Mailer
from src.domain.models.entities.user import User
from src.domain.services.auth_service import AuthService


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a session from the factory on app state, closed after the request."""
    async with request.app.state.db_session_factory() as session:
        yield session


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_current_user(request: Request) -> User:
    """Principal attached by AuthMiddleware."""
    user: User | None = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def get_current_token(request: Request) -> str:
    token: str | None = getattr(request.state, "token", None)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return token
