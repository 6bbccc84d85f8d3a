import logging
import threading
from typing import Any, Callable, Dict

import requests
from jose import JWTError, jwt
from starlette.concurrency import run_in_threadpool

from src.domain.errors import AuthError, AuthErrorKind

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

logger = logging.getLogger(__name__)


def fetch_google_jwks(url: str = GOOGLE_JWKS_URL, timeout: float = 5.0) -> Dict[str, Any]:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.json()


class GoogleTokenVerifier:
    """
    Verifies Google Sign-In ID tokens.

    The token must be RS256-signed by one of Google's published keys, issued by
    accounts.google.com, addressed to our client id, and carry a verified email.
    Any failure surfaces as a single generic EXTERNAL_VERIFICATION_FAILED error.
    """

    def __init__(
        self,
        client_id: str | None,
        fetch_jwks: Callable[[], Dict[str, Any]] = fetch_google_jwks,
    ):
        self.client_id = client_id
        self._fetch_jwks = fetch_jwks
        self._jwks: Dict[str, Any] | None = None
        self._lock = threading.Lock()

    async def verify(self, id_token: str) -> Dict[str, Any]:
        """Return the verified claims of ``id_token`` (network I/O runs in the threadpool)."""
        return await run_in_threadpool(self.verify_sync, id_token)

    def verify_sync(self, id_token: str) -> Dict[str, Any]:
        if not self.client_id:
            logger.error("Google login attempted but GOOGLE_CLIENT_ID is not configured")
            raise AuthError(AuthErrorKind.EXTERNAL_VERIFICATION_FAILED, "client id not configured")

        try:
            kid = jwt.get_unverified_header(id_token).get("kid")
            key = self._signing_key(kid)
            claims = jwt.decode(
                id_token,
                key,
                algorithms=["RS256"],
                audience=self.client_id,
                issuer=GOOGLE_ISSUERS,
                options={"verify_at_hash": False},
            )
        except (JWTError, requests.RequestException, KeyError, ValueError) as e:
            logger.warning("Google ID token verification failed: %s", e)
            raise AuthError(AuthErrorKind.EXTERNAL_VERIFICATION_FAILED, str(e)) from None

        if not claims.get("sub") or not claims.get("email"):
            logger.warning("Google ID token is missing sub or email")
            raise AuthError(AuthErrorKind.EXTERNAL_VERIFICATION_FAILED, "missing sub/email")

        if claims.get("email_verified") is False:
            logger.warning("Google ID token email is not verified")
            raise AuthError(AuthErrorKind.EXTERNAL_VERIFICATION_FAILED, "email not verified")

        logger.info("Google ID token verified")
        return claims

    def _signing_key(self, kid: str | None) -> Dict[str, Any]:
        """Find the JWK for ``kid``, refetching once on a miss in case Google rotated keys."""
        if not kid:
            raise JWTError("Token header has no kid")

        with self._lock:
            if self._jwks is not None:
                key = _find_key(self._jwks, kid)
                if key:
                    return key

            logger.debug("Fetching Google JWKS")
            self._jwks = self._fetch_jwks()
            key = _find_key(self._jwks, kid)

        if not key:
            logger.error("No matching Google signing key for kid: %s", kid)
            raise JWTError("Invalid signing key")
        return key


def _find_key(jwks: Dict[str, Any], kid: str) -> Dict[str, Any] | None:
    return next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
