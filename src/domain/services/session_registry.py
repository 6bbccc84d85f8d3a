import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.base.auth.token_service import TokenService
from src.domain.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Per-user set of open sessions, stored in ``User.tokens``.

    Every mutation re-reads the row under ``get_for_update`` and writes back a new
    list, so each change applies to the currently persisted value. Membership is
    never cached: a revocation is visible to the next request on any worker.
    """

    def __init__(self, token_service: TokenService):
        self._tokens = token_service

    async def record_issued(self, session: AsyncSession, user_id: str, token: str) -> None:
        """Append a freshly issued token, dropping entries that can no longer authenticate."""
        repo = UserRepository(session)
        user = await repo.get_for_update(user_id)
        if user is None:
            raise LookupError(f"user {user_id} not found")

        live = [t for t in (user.tokens or []) if self._tokens.verify(t).is_valid]
        pruned = len(user.tokens or []) - len(live)
        user.tokens = [*live, token]
        await repo.save()

        if pruned:
            logger.info("Pruned %d stale session(s) for user %s", pruned, user_id)
        logger.info("Session opened for user %s (%d active)", user_id, len(user.tokens))

    async def revoke(self, session: AsyncSession, user_id: str, token: str) -> bool:
        """Remove exactly ``token``. Returns False when it was not present (no-op)."""
        repo = UserRepository(session)
        user = await repo.get_for_update(user_id)
        if user is None or not user.has_session(token):
            return False

        user.tokens = [t for t in user.tokens if t != token]
        await repo.save()
        logger.info("Session revoked for user %s (%d active)", user_id, len(user.tokens))
        return True

    async def revoke_all(self, session: AsyncSession, user_id: str) -> int:
        """Close every session of the user. Returns how many were open."""
        repo = UserRepository(session)
        user = await repo.get_for_update(user_id)
        if user is None:
            return 0

        count = len(user.tokens or [])
        user.tokens = []
        await repo.save()
        logger.info("All %d session(s) revoked for user %s", count, user_id)
        return count

    async def is_active(self, session: AsyncSession, user_id: str, token: str) -> bool:
        user = await UserRepository(session).get_by_id(user_id)
        return user is not None and user.has_session(token)
