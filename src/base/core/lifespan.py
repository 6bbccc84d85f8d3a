import datetime
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.base.auth.authenticator import SessionAuthenticator
from src.base.auth.google_verifier import GoogleTokenVerifier
from src.base.auth.password_hasher import PasswordHasher
from src.base.auth.token_service import TokenService
from src.base.config.database import close_db, init_db
from src.base.config.settings import AuthSettings, MailSettings, StorageSettings
from src.base.infra.avatar_storage import AvatarImporter, LocalAvatarStorage
from src.base.infra.mailer import Mailer
from src.domain.services.auth_service import AuthService
from src.domain.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


def build_services(
    app: FastAPI,
    session_factory,
    auth_settings: AuthSettings,
    mail_settings: MailSettings,
    storage_settings: StorageSettings,
) -> None:
    """Construct the service graph and store it on ``app.state``."""
    token_service = TokenService(
        auth_settings.jwt_secret,
        ttl=datetime.timedelta(seconds=auth_settings.jwt_ttl_seconds),
    )
    sessions = SessionRegistry(token_service)
    avatar_importer = AvatarImporter(
        LocalAvatarStorage(storage_settings.avatar_dir),
        timeout=storage_settings.avatar_fetch_timeout,
    )

    app.state.db_session_factory = session_factory
    app.state.token_service = token_service
    app.state.authenticator = SessionAuthenticator(session_factory, token_service, sessions)
    app.state.auth_service = AuthService(
        hasher=PasswordHasher(rounds=auth_settings.bcrypt_rounds),
        token_service=token_service,
        sessions=sessions,
        google_verifier=GoogleTokenVerifier(auth_settings.google_client_id),
        avatar_importer=avatar_importer,
    )
    app.state.mailer = Mailer(mail_settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Centralized initialization and teardown for app services."""
    logger.info("Starting application lifespan...")

    auth_settings = AuthSettings.from_env()
    engine, session_factory = await init_db()
    app.state.db_engine = engine

    logger.info("Initializing services...")
    build_services(
        app,
        session_factory,
        auth_settings,
        MailSettings.from_env(),
        StorageSettings.from_env(),
    )
    if not auth_settings.google_client_id:
        logger.warning("GOOGLE_CLIENT_ID not set; Google login will reject all tokens.")
    logger.info("Services initialized.")

    yield  # --- Application runs here ---

    await close_db(engine)
