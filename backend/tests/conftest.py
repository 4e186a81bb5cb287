"""
Evanescent Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets its own SQLite file (sqlite+aiosqlite) built from
       Base.metadata, so service and API tests run against a real SQL
       engine without a PostgreSQL server.

Fixture Hierarchy:
    Function-scoped:
    ├── database: throwaway Database handle with all tables created
    │   ├── db_session: one AsyncSession on it
    │   └── test_client: HTTPX AsyncClient over an app bound to it
    │       └── register: signs a user up and logs them in via HTTP
    ├── mock_db_session: AsyncMock session for store-failure paths
    ├── password_service / token_service / session_service / writeup_service
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./unused.db"
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret-with-enough-entropy-0001"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret-with-enough-entropy-0002"
os.environ["PASSWORD_TIME_COST"] = "1"
os.environ["PASSWORD_MEMORY_COST"] = "8"  # KiB, keeps argon2 fast in tests
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from evanescent.config import settings
from evanescent.database import Database
from evanescent.main import create_app
from evanescent.services.password_service import PasswordService
from evanescent.services.session_service import SessionService
from evanescent.services.token_service import TokenService
from evanescent.services.writeup_service import WriteupService

API = settings.api_prefix


# ══════════════════════════════════════════════════════════════════════════
# Store Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database(tmp_path):
    """
    A fresh SQLite database file per test.

    A file (not :memory:) so that separate sessions, and therefore the
    concurrent-claim tests, see the same data through separate connections.
    """
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'evanescent_test.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
        with pytest.raises(StoreError): ...
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Service Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def password_service() -> PasswordService:
    return PasswordService(time_cost=1, memory_cost=8)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService.from_settings(settings)


@pytest.fixture
def session_service(password_service, token_service) -> SessionService:
    return SessionService(passwords=password_service, tokens=token_service)


@pytest.fixture
def writeup_service() -> WriteupService:
    return WriteupService()


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to an app bound to the test database.

    ASGITransport does not run the lifespan, so the Database is handed to
    create_app() directly.
    """
    app = create_app(database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(test_client) -> Callable[..., Awaitable[str]]:
    """
    Returns an async helper that signs a user up, logs them in and returns
    the bearer access token.

    Usage:
        token = await register("alice@example.com")
        await test_client.get(f"{API}/writeups", headers=auth_header(token))
    """

    async def _register(email: str, name: str = "Tester", password: str = "correct horse") -> str:
        signup = await test_client.post(
            f"{API}/signup", json={"name": name, "email": email, "password": password}
        )
        assert signup.status_code == 201, signup.text
        login = await test_client.post(f"{API}/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        return login.json()["accessToken"]

    return _register


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def refresh_cookie_from(response) -> str:
    """Pull the refresh token value out of a login response's Set-Cookie header."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name == settings.refresh_cookie_name:
            return rest.split(";", 1)[0]
    raise AssertionError("no refresh cookie in response")
