"""Shared pytest fixtures for hookups tests."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_hookup_service
from app.config import Settings, get_settings
from app.database import Base, get_db
from app.main import app
from app.models import Hookup, HookupEntry  # noqa: F401  (registers tables)
from app.services.hookup_service import HookupService
from app.utils.tokens import create_access_token


@pytest.fixture
def sample_user_id():
    return uuid.uuid4()


@pytest.fixture
def sample_user_id_b():
    return uuid.uuid4()


@pytest.fixture
def sample_hookup_id():
    return str(uuid.uuid4())


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "hookups"


@pytest.fixture
def test_settings(upload_dir):
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        JWT_SECRET_KEY="test-secret",
        HOOKUP_UPLOAD_DIR=str(upload_dir),
    )


@pytest.fixture
def user_token(sample_user_id, test_settings):
    return create_access_token(sample_user_id, role="user", settings=test_settings)


@pytest.fixture
def admin_token(test_settings):
    return create_access_token(uuid.uuid4(), role="admin", settings=test_settings)


@pytest.fixture
def fake_service():
    """A HookupService stand-in whose methods are AsyncMocks."""
    return AsyncMock(spec=HookupService)


@pytest.fixture
def client(fake_service, test_settings):
    """TestClient with the service, DB session and settings overridden."""

    async def _no_db():
        yield None

    app.dependency_overrides[get_hookup_service] = lambda: fake_service
    app.dependency_overrides[get_db] = _no_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_session():
    """An AsyncSession on a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def hookup_service():
    return HookupService()
