"""
WifiAtlas Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:   AsyncMock session for pure unit tests
    ├── db_engine:         in-memory aiosqlite engine with the full schema
    ├── session_factory:   async_sessionmaker bound to db_engine
    ├── db_session:        one session on the in-memory database
    ├── broadcaster:       RecordingBroadcaster (captures published events)
    ├── directory:         FakeDirectory (canned search results)
    ├── make_user:         factory that inserts a user, optionally in an org
    └── test_client:       HTTPX AsyncClient over ASGITransport, wired to the
                           in-memory database and the fakes above
"""

import os

# Settings are read on first import of wifiatlas.config, so these must come first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-the-suite"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["WIGLE_API_ID"] = "test-id"
os.environ["WIGLE_API_KEY"] = "test-key"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wifiatlas.database import Base, get_db_session
from wifiatlas.models import access_point, telemetry  # noqa: F401
from wifiatlas.models.user import Organization, User
from wifiatlas.schemas.directory import DirectoryNetwork, DirectorySearchResult
from wifiatlas.security import hash_password
from wifiatlas.services.broadcaster import Broadcaster, OrganizationBroadcaster
from wifiatlas.services.directory_client import NetworkDirectory


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════


class RecordingBroadcaster(Broadcaster):
    """Broadcaster that records every publish instead of sending it."""

    def __init__(self):
        self.events: List[Tuple[uuid.UUID, str, Dict[str, Any]]] = []

    async def publish(self, organization_id, event, payload) -> int:
        self.events.append((organization_id, event, payload))
        return 1


class FakeDirectory(NetworkDirectory):
    """NetworkDirectory returning canned networks, or raising a canned error."""

    def __init__(self):
        self.networks: List[DirectoryNetwork] = []
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[float, float, float, Optional[str]]] = []

    async def search_networks(self, latitude, longitude, radius_km, ssid_filter=None):
        self.calls.append((latitude, longitude, radius_km, ssid_filter))
        if self.error is not None:
            raise self.error
        return DirectorySearchResult(networks=list(self.networks), total_results=len(self.networks))

    async def site_statistics(self):
        if self.error is not None:
            raise self.error
        return {"success": True, "statistics": {"netwloc": 123}}


# ══════════════════════════════════════════════════════════════════════════
# Unit-test Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behaviour.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.get = AsyncMock()
    session.scalar = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def directory():
    return FakeDirectory()


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
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
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """
    Insert a user (and optionally an organization) and return it.

    Usage:
        user = await make_user("alice", org_slug="acme")
    """

    async def _make(
        username: str,
        org_slug: Optional[str] = None,
        password: str = "password123",
    ) -> User:
        organization_id = None
        if org_slug:
            organization = Organization(name=org_slug.title(), slug=org_slug)
            db_session.add(organization)
            await db_session.flush()
            organization_id = organization.id
        user = User(
            email=f"{username}@example.com",
            username=username,
            password_hash=hash_password(password),
            organization_id=organization_id,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def test_client(session_factory, directory):
    """
    HTTPX AsyncClient talking to a fresh app instance.

    ASGITransport does not run the lifespan, so app.state is populated here.

    Usage:
        response = await test_client.get("/health")
    """
    from wifiatlas.dependencies import get_session_factory
    from wifiatlas.main import create_app

    app = create_app()
    app.state.broadcaster = OrganizationBroadcaster()
    app.state.network_directory = directory

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register(client: AsyncClient, username: str, org_slug: Optional[str] = None) -> Dict[str, Any]:
    """Register through the API and return the `{user, token}` body."""
    body = {
        "email": f"{username}@example.com",
        "username": username,
        "password": "password123",
    }
    if org_slug:
        body["organization_slug"] = org_slug
    response = await client.post("/api/auth/register", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
