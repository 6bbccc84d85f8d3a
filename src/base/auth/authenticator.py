import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.base.auth.token_service import TokenService, TokenStatus
from src.domain.errors import AuthErrorKind
from src.domain.models.entities.user import User
from src.domain.repositories.user_repository import UserRepository
from src.domain.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthOutcome:
    """Result of authenticating one request: either a principal or an error kind."""

    user: User | None = None
    token: str | None = None
    error: AuthErrorKind | None = None

    @property
    def accepted(self) -> bool:
        return self.error is None

    @classmethod
    def reject(cls, kind: AuthErrorKind) -> "AuthOutcome":
        return cls(error=kind)


def parse_bearer(header: str | None) -> tuple[str | None, AuthErrorKind | None]:
    """Split ``Bearer <token>``; anything else is malformed."""
    if not header:
        return None, AuthErrorKind.AUTH_HEADER_MISSING

    parts = header.strip().split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None, AuthErrorKind.AUTH_HEADER_MALFORMED
    return parts[1], None


class SessionAuthenticator:
    """
    Decides whether an ``Authorization`` header identifies a live session.

    The checks run in a fixed order and the first failing one decides the outcome:
    header present, header format, token signature, token expiry, user exists,
    token still in the user's session list. An expired token is additionally
    removed from its owner's session list on a best-effort basis.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        token_service: TokenService,
        sessions: SessionRegistry,
    ):
        self._session_factory = session_factory
        self._tokens = token_service
        self._sessions = sessions

    async def authenticate(self, header: str | None) -> AuthOutcome:
        token, error = parse_bearer(header)
        if error:
            return AuthOutcome.reject(error)

        verification = self._tokens.verify(token)
        if verification.status is TokenStatus.EXPIRED:
            await self._cleanup_expired(token)
            return AuthOutcome.reject(AuthErrorKind.TOKEN_EXPIRED)
        if verification.status is TokenStatus.INVALID:
            return AuthOutcome.reject(AuthErrorKind.TOKEN_INVALID)

        async with self._session_factory() as session:
            user = await UserRepository(session).get_by_id(verification.user_id)

        if user is None:
            logger.warning("Token references missing user %s", verification.user_id)
            return AuthOutcome.reject(AuthErrorKind.USER_NOT_FOUND)

        if not user.has_session(token):
            logger.info("Rejected revoked session for user %s", user.id)
            return AuthOutcome.reject(AuthErrorKind.SESSION_REVOKED)

        return AuthOutcome(user=user, token=token)

    async def _cleanup_expired(self, token: str) -> None:
        """Drop an expired token from its owner's sessions. Never raises."""
        try:
            claims = self._tokens.decode_ignoring_expiry(token)
            if not claims.is_valid:
                return
            async with self._session_factory() as session:
                removed = await self._sessions.revoke(session, claims.user_id, token)
            if removed:
                logger.info("Cleaned expired token for user %s", claims.user_id)
        except Exception:
            logger.warning("Expired token cleanup failed", exc_info=True)
