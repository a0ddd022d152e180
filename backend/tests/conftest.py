"""
ClimbTime Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite with a
       StaticPool, so all sessions see the same data) with the schema
       created from Base.metadata. The FastAPI app's session dependency is
       pointed at it.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:        in-memory engine with all tables
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── db_session:       one AsyncSession, for service-level tests
    ├── client:           HTTPX AsyncClient talking to the app through ASGITransport
    ├── make_user:        creates and commits a user (for API tests)
    ├── auth_headers:     Authorization header for a user
    ├── temp_storage:     temporary directory for file tests
    └── sample_image_bytes
"""

import itertools
import os
import tempfile

# Override settings for testing BEFORE any climbtime imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="climbtime_test_")
os.environ["PREDICTION_SERVICE_URL"] = "http://prediction.test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import climbtime.models  # noqa: F401
from climbtime.database import Base, get_db_session
from climbtime.schemas.user import SignupRequest
from climbtime.security import create_session_token
from climbtime.services.user_service import user_service

DEFAULT_PASSWORD = "password123"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """
    A single session for service-level tests.

    Services only flush, so everything a test does stays visible inside
    this session without committing.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def new_user(db_session):
    """Create a user inside db_session. Usage: `alice = await new_user("Alice")`."""
    counter = itertools.count(1)

    async def _create(name=None, email=None, password=DEFAULT_PASSWORD):
        n = next(counter)
        return await user_service.create_user(
            db_session,
            SignupRequest(
                name=name or f"Climber {n}",
                email=email or f"climber{n}@example.com",
                password=password,
            ),
        )

    return _create


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory):
    """
    HTTPX AsyncClient wired to the FastAPI app.

    Each request gets its own session from the test database, committed on
    success like the real get_db_session.
    """
    from climbtime.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    """Create and commit a user. Usage: `alice = await make_user("Alice")`."""
    counter = itertools.count(1)

    async def _create(name=None, email=None, password=DEFAULT_PASSWORD):
        n = next(counter)
        async with session_factory() as session:
            user = await user_service.create_user(
                session,
                SignupRequest(
                    name=name or f"Climber {n}",
                    email=email or f"climber{n}@example.com",
                    password=password,
                ),
            )
            await session.commit()
            return user

    return _create


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_session_token(user.id)}"}

    return _headers


@pytest.fixture
def follow(client, auth_headers):
    """Make `follower` follow `target` through the API."""

    async def _follow(follower, target):
        response = await client.post(
            "/api/follow",
            json={"targetUserId": str(target.id), "action": "follow"},
            headers=auth_headers(follower),
        )
        assert response.status_code == 200
        return response

    return _follow


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )
