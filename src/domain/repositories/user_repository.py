import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.errors import AuthError, AuthErrorKind
from src.domain.models.entities.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Data access for ``User`` rows. One instance per ``AsyncSession``."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> User | None:
        return await self.session.get(User, user_id, populate_existing=True)

    async def get_for_update(self, user_id: str) -> User | None:
        """Load a user with a row lock (``SELECT ... FOR UPDATE``) where the dialect supports it.

        Always reads the current persisted row, bypassing the identity map,
        so token list mutations start from what is actually stored.
        """
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_sub(self, sub: str) -> User | None:
        stmt = select(User).where(User.sub == sub)
        return (await self.session.scalars(stmt)).one_or_none()

    async def add(self, user: User) -> User:
        """Insert a new user atomically.

        Raises:
            AuthError: UNIQUENESS_CONFLICT when username, email or sub is taken.
        """
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.info("User creation rejected by unique constraint: %s", e.orig)
            raise AuthError(AuthErrorKind.UNIQUENESS_CONFLICT) from None

        await self.session.refresh(user)
        return user

    async def save(self) -> None:
        """Commit pending changes on already-persisted users."""
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise AuthError(AuthErrorKind.UNIQUENESS_CONFLICT) from None
