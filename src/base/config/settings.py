import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthSettings:
    """Signing and hashing parameters for local authentication."""

    jwt_secret: str
    jwt_ttl_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = 10
    google_client_id: str | None = None

    @classmethod
    def from_env(cls) -> "AuthSettings":
        secret = os.getenv("JWT_SECRET")
        if not secret:
            raise RuntimeError("JWT_SECRET must be set")

        return cls(
            jwt_secret=secret,
            jwt_ttl_seconds=int(os.getenv("JWT_TTL_SECONDS", str(24 * 60 * 60))),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID"),
        )


@dataclass(frozen=True)
class MailSettings:
    """SMTP transport settings. Sending is disabled when host or sender is missing."""

    smtp_host: str | None = None
    smtp_port: int = 465
    smtp_user: str | None = None
    smtp_password: str | None = None
    from_email: str | None = None
    from_name: str = "Media Catalog"

    @classmethod
    def from_env(cls) -> "MailSettings":
        user = os.getenv("SMTP_USER")
        return cls(
            smtp_host=os.getenv("SMTP_HOST", "smtp.zoho.eu"),
            smtp_port=int(os.getenv("SMTP_PORT", "465")),
            smtp_user=user,
            smtp_password=os.getenv("SMTP_PASSWORD"),
            from_email=os.getenv("MAIL_FROM", user),
            from_name=os.getenv("MAIL_FROM_NAME", "Media Catalog"),
        )


@dataclass(frozen=True)
class StorageSettings:
    avatar_dir: str = "./avatars"
    avatar_fetch_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "StorageSettings":
        return cls(
            avatar_dir=os.getenv("AVATAR_DIR", "./avatars"),
            avatar_fetch_timeout=float(os.getenv("AVATAR_FETCH_TIMEOUT", "10")),
        )
