"""
Get Yummy Backend - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite,
       StaticPool so all sessions share the one connection), its own
       Settings, and an app built by create_app() whose database dependency
       and mailer are swapped for test doubles.

Fixture Hierarchy (all function-scoped):
    test_settings ─┬─ codec
                   ├─ image_service
                   └─ app ── client
    engine ── session_factory ─┬─ db_session
                               └─ app (get_db_session override)
    fake_mailer ─┬─ auth_service
                 └─ app
"""

import os
import tempfile
from typing import AsyncGenerator, List, Optional

# Must be set before getyummy is imported: config and database read them at import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_ROOT"] = tempfile.mkdtemp(prefix="getyummy_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import getyummy.models  # noqa: F401
from getyummy.config import Settings
from getyummy.database import Base, get_db_session
from getyummy.exceptions import MailDeliveryError
from getyummy.main import create_app
from getyummy.models.user import User
from getyummy.services.auth_service import AuthService
from getyummy.services.image_service import ImageService
from getyummy.services.passwords import hash_password
from getyummy.services.token_codec import TokenCodec

TEST_PASSWORD = "Sup3r$ecret"


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeMailer:
    """Stands in for MailService; records messages instead of talking SMTP."""

    def __init__(self):
        self.sent: List[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise MailDeliveryError(context={"reason": "test"})
        self.sent.append({"to": to, "subject": subject, "html": html})


# ══════════════════════════════════════════════════════════════════════════
# Configuration
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_access_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        bcrypt_rounds=4,
        upload_root=str(tmp_path / "uploads"),
        frontend_url="http://frontend.test",
        auth_rate_limit_requests=1000,
        log_level="WARNING",
        _env_file=None,
    )


@pytest.fixture
def codec(test_settings) -> TokenCodec:
    return TokenCodec(test_settings)


@pytest.fixture
def fake_mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def auth_service(test_settings, codec, fake_mailer) -> AuthService:
    return AuthService(test_settings, codec, fake_mailer)


@pytest.fixture
def image_service(test_settings) -> ImageService:
    return ImageService(test_settings)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


async def _create_user(
    session: AsyncSession,
    name: str = "Alice",
    email: str = "alice@example.com",
    password: str = TEST_PASSWORD,
    is_admin: bool = False,
) -> User:
    """Insert and commit a user directly, bypassing the API."""
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password, rounds=4),
        is_admin=is_admin,
    )
    session.add(user)
    await session.commit()
    return user


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_app(session_factory, fake_mailer):
    """Factory for apps sharing the test database; tests may pass their own Settings."""

    def _make(app_settings: Settings):
        app = create_app(app_settings)
        app.state.mail_service = fake_mailer
        app.state.auth_service = AuthService(app_settings, app.state.token_codec, fake_mailer)

        async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
            async with session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_db_session] = _test_db_session
        return app

    return _make


@pytest.fixture
def app(make_app, test_settings):
    return make_app(test_settings)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def bearer(codec):
    """Authorization header for a user, signed with the test secrets."""

    def _bearer(user: User, is_admin: Optional[bool] = None) -> dict:
        admin = user.is_admin if is_admin is None else is_admin
        return {"Authorization": f"Bearer {codec.issue_access(user.id, user.email, admin)}"}

    return _bearer


@pytest.fixture
def make_user(db_session):
    """`await make_user(name=..., email=..., is_admin=...)` inserts and commits a user."""

    async def _make(**kwargs) -> User:
        return await _create_user(db_session, **kwargs)

    return _make
