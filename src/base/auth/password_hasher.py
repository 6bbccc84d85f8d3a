import logging
import secrets

import bcrypt
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of input and newer releases reject longer values.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    bcrypt password hashing.

    Every ``hash`` call generates a fresh salt, so hashing the same password twice
    yields different digests. The work factor is ``rounds`` (bcrypt cost, 2^rounds
    iterations). Both operations run in the threadpool to keep the event loop free.
    """

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_sync(self, plaintext: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    def verify_sync(self, plaintext: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            # Malformed digest or oversized input: treat as a mismatch.
            logger.debug("Password verification against malformed digest")
            return False

    async def hash(self, plaintext: str) -> str:
        return await run_in_threadpool(self.hash_sync, plaintext)

    async def verify(self, plaintext: str, digest: str | None) -> bool:
        if not digest:
            return False
        return await run_in_threadpool(self.verify_sync, plaintext, digest)

    @staticmethod
    def generate_unusable_password() -> str:
        """Random secret for accounts that never log in with a password."""
        return secrets.token_urlsafe(32)
