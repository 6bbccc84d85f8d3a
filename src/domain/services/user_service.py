import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.models.entities.user import User
from src.domain.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Profile fields a user may change on their own record.
EDITABLE_FIELDS = {"name", "birthdate"}


class UserService:
    async def update_profile(
        self,
        session: AsyncSession,
        user_id: str,
        changes: dict[str, Any],
    ) -> User | None:
        """Apply profile changes. Returns None if the user no longer exists."""
        repo = UserRepository(session)
        user = await repo.get_by_id(user_id)
        if user is None:
            return None

        for field, value in changes.items():
            if field in EDITABLE_FIELDS:
                setattr(user, field, value)

        await repo.save()
        logger.info("Updated profile of user %s", user_id)
        return user
