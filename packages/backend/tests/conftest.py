"""Test fixtures — an isolated in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps the single connection alive so every session sees the same DB.
2. Foreign keys are switched on per connection, so ON DELETE CASCADE
   behaves like it does in Postgres.
3. The app is built with create_app(test_settings) (fast bcrypt rounds,
   a fixed JWT secret) and its get_db dependency is overridden to
   yield the test session.

No auth override here: every protected request in these tests carries a
real token from a real register+login round trip.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from microcrm.auth.jwt import TokenService
from microcrm.auth.password import PasswordHasher
from microcrm.config import Settings
from microcrm.db.engine import get_db
from microcrm.db.models import Base
from microcrm.main import create_app

TEST_DB_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "password_123"


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        environment="test",
        jwt_secret="test-secret-do-not-use-anywhere-else",
        bcrypt_rounds=4,
        access_token_expire_minutes=15,
    )


@pytest.fixture()
def hasher(test_settings) -> PasswordHasher:
    return PasswordHasher(rounds=test_settings.bcrypt_rounds)


@pytest.fixture()
def tokens(test_settings) -> TokenService:
    return TokenService(
        secret=test_settings.jwt_secret,
        algorithm=test_settings.jwt_algorithm,
        expires_minutes=test_settings.access_token_expire_minutes,
    )


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(db_session, test_settings):
    """HTTP client against a freshly built app wired to the test database."""
    app = create_app(test_settings)

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def register_and_login(client, email: str | None = None, password: str = TEST_PASSWORD):
    """Register a user and return (auth headers, login response body)."""
    email = email or unique_email()
    r = await client.post(
        "/api/v1/auth/register", json={"email": email, "password": password}
    )
    assert r.status_code == 201, r.text
    r = await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    assert r.status_code == 200, r.text
    body = r.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body


@pytest_asyncio.fixture()
async def auth_headers(client):
    headers, _ = await register_and_login(client, unique_email("owner"))
    return headers


@pytest_asyncio.fixture()
async def other_auth_headers(client):
    headers, _ = await register_and_login(client, unique_email("other"))
    return headers
