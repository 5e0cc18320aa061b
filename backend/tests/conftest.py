"""
PlaceShare Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── db_engine: in-memory SQLite (aiosqlite, StaticPool) with all tables created
    │   └── session_factory → db_session
    │       └── user, other_user: committed User rows
    ├── mock_db_session: AsyncMock session for tests that never touch SQL
    ├── temp_storage → asset_store: AssetStore rooted in a temp directory
    ├── stub_geocoder: Geocoder returning (40.0, -74.0) unless told to fail
    ├── place_service: PlaceService wired to the stub geocoder and temp store
    ├── png_image: a small UploadedImage
    └── test_client: HTTPX AsyncClient against the app, DB and services overridden
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEOCODING_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="placeshare_test_")
os.environ["ASSET_CLEANUP_WAIT"] = "0"
os.environ["RECONCILE_INTERVAL_SECONDS"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.exceptions import GeocodingError
from app.models.place import Place  # noqa: F401
from app.models.user import User, UserPlace  # noqa: F401
from app.schemas.place import Coordinates, UploadedImage
from app.services.asset_store import AssetStore
from app.services.geocoder_base import Geocoder
from app.services.place_service import PlaceService
from app.services.user_service import UserService

# Smallest byte string that starts like a PNG; content is never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class StubGeocoder(Geocoder):
    """Records every lookup; returns `coordinates` or raises `error`."""

    def __init__(self, coordinates: Coordinates):
        self.coordinates = coordinates
        self.error: Optional[GeocodingError] = None
        self.calls: List[str] = []

    async def resolve(self, address: str) -> Coordinates:
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.coordinates

    async def health_check(self) -> bool:
        return True


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single connection alive, otherwise every new
    connection would see an empty :memory: database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def _make_user(session_factory, name: str, email: str) -> User:
    async with session_factory() as session:
        user = User(name=name, email=email)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def user(session_factory) -> User:
    return await _make_user(session_factory, "Ada Lovelace", "ada@example.com")


@pytest_asyncio.fixture
async def other_user(session_factory) -> User:
    return await _make_user(session_factory, "Grace Hopper", "grace@example.com")


@pytest.fixture
def mock_db_session():
    """
    Mock async database session for tests whose repositories are patched.
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
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def asset_store(temp_storage) -> AssetStore:
    return AssetStore(storage_root=temp_storage, cleanup_attempts=2, cleanup_wait=0)


@pytest.fixture
def stub_geocoder() -> StubGeocoder:
    return StubGeocoder(Coordinates(latitude=40.0, longitude=-74.0))


@pytest.fixture
def place_service(stub_geocoder, asset_store) -> PlaceService:
    return PlaceService(
        geocoder=stub_geocoder,
        asset_store=asset_store,
        empty_user_places_is_not_found=True,
    )


@pytest.fixture
def png_image() -> UploadedImage:
    return UploadedImage(content=PNG_BYTES, content_type="image/png", filename="place.png")


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory, place_service):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    The request session comes from the test database and the place service
    uses the stub geocoder and temp asset store.
    """
    from app.database import get_db_session
    from app.main import app
    from app.routes.dependencies import get_place_service, get_user_service

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_place_service] = lambda: place_service
    app.dependency_overrides[get_user_service] = lambda: UserService()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
