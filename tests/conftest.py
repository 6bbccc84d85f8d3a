import datetime

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.domain.models.entities  # noqa: F401
from src.base.auth.authenticator import SessionAuthenticator
from src.base.auth.password_hasher import PasswordHasher
from src.base.auth.token_service import TokenService
from src.base.config.database import Base
from src.base.config.settings import MailSettings
from src.base.infra.avatar_storage import AvatarImportError
from src.base.infra.mailer import Mailer
from src.base.middleware.auth_middleware import AuthMiddleware
from src.base.routes.health import router as health_router
from src.domain.errors import AuthError, AuthErrorKind
from src.domain.routes.auth_routes import router as auth_router
from src.domain.routes.user_routes import router as user_router
from src.domain.services.auth_service import AuthService
from src.domain.services.session_registry import SessionRegistry

TEST_SECRET = "test-signing-secret"


class FakeGoogleVerifier:
    """Accepts only the ID tokens registered in ``claims_by_token``."""

    def __init__(self):
        self.claims_by_token: dict[str, dict] = {}

    async def verify(self, id_token: str) -> dict:
        claims = self.claims_by_token.get(id_token)
        if claims is None:
            raise AuthError(AuthErrorKind.EXTERNAL_VERIFICATION_FAILED, "unknown test token")
        return claims


class FakeAvatarImporter:
    def __init__(self):
        self.fail = False
        self.imported: list[str] = []
        self.discarded: list[str] = []

    async def import_from_url(self, url: str) -> str:
        if self.fail:
            raise AvatarImportError("picture host unreachable")
        self.imported.append(url)
        return f"avatars/{len(self.imported)}.png"

    async def discard(self, ref: str) -> None:
        self.discarded.append(ref)


class RecordingMailer(Mailer):
    """Mailer that records messages instead of talking SMTP."""

    def __init__(self):
        super().__init__(MailSettings(smtp_host="smtp.test", from_email="noreply@test"))
        self.sent: list[tuple[str, str, str]] = []

    def send_sync(self, to: str, subject: str, html_body: str) -> bool:
        self.sent.append((to, subject, html_body))
        return True


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def token_service():
    return TokenService(TEST_SECRET, ttl=datetime.timedelta(hours=24))


@pytest.fixture
def expired_token_service():
    """Same secret, but every token it issues is already past its expiry."""
    return TokenService(TEST_SECRET, ttl=datetime.timedelta(seconds=-60))


@pytest.fixture
def hasher():
    # Minimum bcrypt cost keeps the suite fast.
    return PasswordHasher(rounds=4)


@pytest.fixture
def sessions(token_service):
    return SessionRegistry(token_service)


@pytest.fixture
def google_verifier():
    return FakeGoogleVerifier()


@pytest.fixture
def avatar_importer():
    return FakeAvatarImporter()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def auth_service(hasher, token_service, sessions, google_verifier, avatar_importer):
    return AuthService(
        hasher=hasher,
        token_service=token_service,
        sessions=sessions,
        google_verifier=google_verifier,
        avatar_importer=avatar_importer,
    )


@pytest.fixture
def authenticator(db_session_factory, token_service, sessions):
    return SessionAuthenticator(db_session_factory, token_service, sessions)


@pytest.fixture
def app(db_session_factory, db_engine, auth_service, authenticator, token_service, mailer):
    test_app = FastAPI()
    test_app.state.db_session_factory = db_session_factory
    test_app.state.db_engine = db_engine
    test_app.state.token_service = token_service
    test_app.state.authenticator = authenticator
    test_app.state.auth_service = auth_service
    test_app.state.mailer = mailer
    test_app.add_middleware(AuthMiddleware)

    test_app.include_router(health_router)
    test_app.include_router(auth_router)
    test_app.include_router(user_router)
    return test_app


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c


