import datetime
import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from jose import ExpiredSignatureError, JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class TokenStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of checking a bearer token. ``user_id`` is set only when VALID."""

    status: TokenStatus
    user_id: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is TokenStatus.VALID


class TokenService:
    """Issues and checks the signed bearer tokens handed out at login."""

    def __init__(self, secret: str, ttl: datetime.timedelta = datetime.timedelta(hours=24)):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, user_id: str) -> str:
        now = datetime.datetime.now(datetime.UTC)
        claims = {
            "sub": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
            # Keeps tokens issued within the same second distinct.
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenVerification:
        """Check signature and expiry. Never raises."""
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            return TokenVerification(TokenStatus.EXPIRED)
        except JWTError as e:
            logger.debug("Token rejected: %s", e)
            return TokenVerification(TokenStatus.INVALID)
        return self._from_claims(claims)

    def decode_ignoring_expiry(self, token: str) -> TokenVerification:
        """Check the signature only, so expired-but-genuine tokens can be attributed to a user.

        Returns VALID (with user_id) for any correctly signed token, INVALID otherwise.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError:
            return TokenVerification(TokenStatus.INVALID)
        return self._from_claims(claims)

    @staticmethod
    def _from_claims(claims: dict) -> TokenVerification:
        user_id = claims.get("sub")
        if not isinstance(user_id, str) or not user_id:
            return TokenVerification(TokenStatus.INVALID)
        return TokenVerification(TokenStatus.VALID, user_id=user_id)
