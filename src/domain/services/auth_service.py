import logging
import re
import secrets
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from src.base.auth.google_verifier import GoogleTokenVerifier
from src.base.auth.password_hasher import PasswordHasher
from src.base.auth.token_service import TokenService
from src.base.infra.avatar_storage import AvatarImporter, AvatarImportError
from src.domain.errors import AuthError, AuthErrorKind
from src.domain.models.entities.user import User
from src.domain.models.user_schemas import LoginRequest, RegisterRequest
from src.domain.repositories.user_repository import UserRepository
from src.domain.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

# Username derived from a Google email when the local part is already taken.
_USERNAME_ATTEMPTS = 5


class AuthService:
    """Registration, password and Google login, and logout.

    Every successful login path ends the same way: issue a token and record it
    in the user's session registry.
    """

    def __init__(
        self,
        hasher: PasswordHasher,
        token_service: TokenService,
        sessions: SessionRegistry,
        google_verifier: GoogleTokenVerifier,
        avatar_importer: AvatarImporter,
    ):
        self.hasher = hasher
        self.tokens = token_service
        self.sessions = sessions
        self.google = google_verifier
        self.avatars = avatar_importer

    async def register(self, session: AsyncSession, data: RegisterRequest) -> tuple[User, str]:
        """Create a local account and open its first session.

        Raises:
            AuthError: UNIQUENESS_CONFLICT if username or email is taken.
        """
        user = User(
            username=data.username,
            email=str(data.email),
            password_hash=await self.hasher.hash(data.password),
            name=data.name,
            birthdate=data.birthdate,
            tokens=[],
        )
        user = await UserRepository(session).add(user)
        logger.info("Registered user %s", user.id)

        token = await self._open_session(session, user)
        return user, token

    async def login(self, session: AsyncSession, data: LoginRequest) -> tuple[User, str]:
        """Check username and password and open a new session.

        Raises:
            AuthError: INVALID_CREDENTIALS for an unknown user or a wrong password;
                the two cases are indistinguishable to the caller.
        """
        user = await UserRepository(session).get_by_username(data.username)
        if user is None:
            # Hash anyway: unknown usernames take as long as wrong passwords.
            await self.hasher.hash(self.hasher.generate_unusable_password())
            logger.info("Login failed: unknown username")
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        if not await self.hasher.verify(data.password, user.password_hash):
            logger.info("Login failed: wrong password for user %s", user.id)
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        token = await self._open_session(session, user)
        logger.info("User %s logged in", user.id)
        return user, token

    async def logout(self, session: AsyncSession, user: User, token: str) -> None:
        await self.sessions.revoke(session, user.id, token)

    async def logout_all(self, session: AsyncSession, user: User) -> int:
        return await self.sessions.revoke_all(session, user.id)

    async def google_login(self, session: AsyncSession, id_token: str) -> tuple[User, str, bool]:
        """Sign in with a Google ID token, creating the local account on first use.

        Returns:
            Tuple of (user, token, created).

        Raises:
            AuthError: EXTERNAL_VERIFICATION_FAILED for a bad Google token,
                FEDERATED_SUBJECT_MISMATCH when the email belongs to an account
                linked to another Google identity or the Google identity is
                linked to another account, AVATAR_IMPORT_FAILED when the
                profile picture of a new account cannot be imported,
                UNIQUENESS_CONFLICT when a concurrent registration won the race.
        """
        claims = await self.google.verify(id_token)
        sub = claims["sub"]
        email = claims["email"]

        repo = UserRepository(session)
        user = await repo.get_by_email(email)
        created = False

        if user is None or user.sub is None:
            owner = await repo.get_by_sub(sub)
            if owner is not None:
                logger.warning("Google subject already linked to user %s", owner.id)
                raise AuthError(AuthErrorKind.FEDERATED_SUBJECT_MISMATCH)

        if user is None:
            user = await self._create_google_user(repo, claims)
            created = True
        elif user.sub is None:
            user.sub = sub
            await repo.save()
            logger.info("Linked Google identity to existing user %s", user.id)
        elif user.sub != sub:
            logger.warning("Google login for user %s with a different subject", user.id)
            raise AuthError(AuthErrorKind.FEDERATED_SUBJECT_MISMATCH)

        token = await self._open_session(session, user)
        logger.info("User %s logged in with Google", user.id)
        return user, token, created

    async def _create_google_user(self, repo: UserRepository, claims: Dict[str, Any]) -> User:
        profile_pic = None
        picture = claims.get("picture")
        if picture:
            try:
                profile_pic = await self.avatars.import_from_url(picture)
            except AvatarImportError as e:
                logger.error("Google registration aborted, avatar import failed: %s", e)
                raise AuthError(AuthErrorKind.AVATAR_IMPORT_FAILED, str(e)) from e

        username = await self._available_username(repo, claims["email"])
        user = User(
            username=username,
            email=claims["email"],
            sub=claims["sub"],
            password_hash=await self.hasher.hash(self.hasher.generate_unusable_password()),
            name=claims.get("name"),
            profile_pic=profile_pic,
            tokens=[],
        )
        try:
            user = await repo.add(user)
        except AuthError:
            if profile_pic:
                await self.avatars.discard(profile_pic)
            raise
        logger.info("Registered user %s from Google", user.id)
        return user

    @staticmethod
    async def _available_username(repo: UserRepository, email: str) -> str:
        base = re.sub(r"[^A-Za-z0-9_.-]", "", email.split("@", 1)[0]) or "user"
        candidate = base
        for _ in range(_USERNAME_ATTEMPTS):
            if await repo.get_by_username(candidate) is None:
                return candidate
            candidate = f"{base}{secrets.randbelow(10_000):04d}"
        return f"{base}-{secrets.token_hex(4)}"

    async def _open_session(self, session: AsyncSession, user: User) -> str:
        token = self.tokens.issue(user.id)
        await self.sessions.record_issued(session, user.id, token)
        return token
