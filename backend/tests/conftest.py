"""
Shared test fixtures and configuration for Employee Directory backend tests.
"""
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("REDIS_URL", None)

CEO_EMAIL = "ceo@company.com"
CEO_PASSWORD = "ceo123456"
SAMPLE_EMAIL = "sarah.johnson@company.com"
SAMPLE_PASSWORD = "password123"


@pytest.fixture
def mock_db_session():
    """Create a mock async database session."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest_asyncio.fixture
async def database() -> AsyncGenerator:
    """In-memory SQLite database with all tables created."""
    from employee_directory.db.session import Database

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = Database("sqlite+aiosqlite://", engine=engine)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_database(database):
    """Database holding the seed data: reference tables, the CEO and 14 sample employees."""
    from employee_directory.db.seed import seed_database

    async with database.session() as session:
        await seed_database(session)
    return database


@pytest.fixture
def storage(tmp_path):
    from employee_directory.core.storage import LocalObjectStorage

    return LocalObjectStorage(str(tmp_path / "uploads"))


@pytest_asyncio.fixture
async def client(seeded_database, storage) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the application, backed by the seeded test database."""
    from employee_directory.main import app

    previous = (getattr(app.state, "database", None), getattr(app.state, "storage", None))
    app.state.database = seeded_database
    app.state.storage = storage

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.state.database, app.state.storage = previous


async def login(client: AsyncClient, email: str, password: str):
    return await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def refresh_cookie_from(response) -> str:
    """Value of the refresh cookie set by a response, or None if absent."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() == "refreshToken":
            return rest.split(";", 1)[0]
    return None


@pytest_asyncio.fixture
async def ceo_token(client) -> str:
    response = await login(client, CEO_EMAIL, CEO_PASSWORD)
    assert response.status_code == 200
    return response.json()["data"]["accessToken"]


@pytest_asyncio.fixture
async def sample_login(client):
    """Login response data for a seeded employee holding only READ_EMPLOYEE."""
    response = await login(client, SAMPLE_EMAIL, SAMPLE_PASSWORD)
    assert response.status_code == 200
    return response.json()["data"]
