"""
Shared test fixtures for the TaskDesk test suite.

Every test gets its own in-memory aiosqlite database and a recording
mailer; both are swapped in through FastAPI dependency overrides.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.api.deps import get_db
from taskdesk.core.security import create_access_token, get_password_hash
from taskdesk.db.base import Base
from taskdesk.db.session import build_engine, build_session_factory
from taskdesk.main import app
from taskdesk.models.user import User
from taskdesk.services.mailer import EmailMessage, MailerError, get_mailer


class RecordingMailer:
    """Keeps every message; raises ``MailerError`` while ``fail`` is set."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []
        self.fail = False

    async def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise MailerError("smtp down")
        self.sent.append(message)

    def last_to(self, email: str) -> EmailMessage:
        return [m for m in self.sent if m.to == email][-1]


@pytest.fixture
async def engine():
    """Fresh schema for every test."""
    test_engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def async_client(session_factory, mailer) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fetch_user(session_factory):
    """Read a user back through a fresh session (no stale identity map)."""

    async def _fetch(email: str) -> User | None:
        async with session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def make_user(session_factory):
    """Insert a user; pass ``password=None`` to leave it in the invited state."""

    async def _make(email: str, role: str = "user", password: str | None = "password123", **extra) -> User:
        fields = {
            "first_name": "Test",
            "last_name": role.capitalize(),
            "mobile_number": "+15550001111",
            "role": role,
        }
        fields.update(extra)
        user = User(email=email, **fields)
        if password is not None:
            user.hashed_password = get_password_hash(password)
            user.is_first_login = False
        async with session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user

    return _make


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user("admin@example.com", role="admin")


@pytest.fixture
async def regular_user(make_user) -> User:
    return await make_user("worker@example.com", role="user")


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def user_headers(regular_user) -> dict[str, str]:
    return auth_headers(regular_user)
