"""
Authentication error taxonomy.

Every expected failure of the auth core is identified by an ``AuthErrorKind``.
Each kind carries the HTTP status and the fixed client-facing message, so the
middleware and the routes branch on the kind rather than on exception classes.
"""

from enum import Enum

from fastapi import HTTPException, status


class AuthErrorKind(str, Enum):
    AUTH_HEADER_MISSING = "auth_header_missing"
    AUTH_HEADER_MALFORMED = "auth_header_malformed"
    TOKEN_INVALID = "token_invalid"
    TOKEN_EXPIRED = "token_expired"
    USER_NOT_FOUND = "user_not_found"
    SESSION_REVOKED = "session_revoked"
    UNIQUENESS_CONFLICT = "uniqueness_conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    EXTERNAL_VERIFICATION_FAILED = "external_verification_failed"
    FEDERATED_SUBJECT_MISMATCH = "federated_subject_mismatch"
    AVATAR_IMPORT_FAILED = "avatar_import_failed"

    @property
    def status_code(self) -> int:
        return _STATUS[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_STATUS = {
    AuthErrorKind.AUTH_HEADER_MISSING: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.AUTH_HEADER_MALFORMED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorKind.SESSION_REVOKED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.UNIQUENESS_CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.EXTERNAL_VERIFICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.FEDERATED_SUBJECT_MISMATCH: status.HTTP_409_CONFLICT,
    AuthErrorKind.AVATAR_IMPORT_FAILED: status.HTTP_502_BAD_GATEWAY,
}

_MESSAGES = {
    AuthErrorKind.AUTH_HEADER_MISSING: "Authorization header missing",
    AuthErrorKind.AUTH_HEADER_MALFORMED: "Invalid authorization format",
    AuthErrorKind.TOKEN_INVALID: "Invalid token",
    AuthErrorKind.TOKEN_EXPIRED: "Token expired",
    AuthErrorKind.USER_NOT_FOUND: "User not found",
    AuthErrorKind.SESSION_REVOKED: "Session terminated. Please log in again.",
    # No field-level detail: which of username/email exists is not disclosed.
    AuthErrorKind.UNIQUENESS_CONFLICT: "User already exists",
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid username or password",
    AuthErrorKind.EXTERNAL_VERIFICATION_FAILED: "Invalid Google token",
    AuthErrorKind.FEDERATED_SUBJECT_MISMATCH: "Account is linked to a different Google identity",
    AuthErrorKind.AVATAR_IMPORT_FAILED: "Could not import profile picture",
}


class AuthError(Exception):
    """Expected authentication failure raised by services and caught by routes."""

    def __init__(self, kind: AuthErrorKind, detail: str | None = None):
        super().__init__(detail or kind.message)
        self.kind = kind
        # Internal detail for logs only; clients always get kind.message.
        self.detail = detail

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.kind.status_code, detail=self.kind.message)
