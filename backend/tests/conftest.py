"""
Pytest configuration and fixtures for LedgerCRM backend tests.
"""
import os
import uuid
from collections.abc import AsyncGenerator

# Settings are read at import time by ledgercrm.main
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key-for-encryption-32chars")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ledgercrm.infrastructure.database.connection import build_engine, get_session
from ledgercrm.infrastructure.database.mappers import AliasMapper, HolderLinkMapper, HolderMapper
from ledgercrm.infrastructure.database.models.base import Base
from ledgercrm.infrastructure.database.repositories import (
    AliasRepository,
    HolderLinkRepository,
    HolderRepository,
)
from ledgercrm.main import create_app
from ledgercrm.shared.crypto import FieldCipher

# In-memory SQLite by default; point at PostgreSQL to exercise the real indexes
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
TEST_SECRET_KEY = "test-secret-key-for-encryption-32chars"


@pytest.fixture
def cipher() -> FieldCipher:
    """Cipher with a fixed test key."""
    return FieldCipher(TEST_SECRET_KEY)


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async test database engine with a fresh schema."""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create async test database session."""
    session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def test_org_id() -> uuid.UUID:
    """Generate a test organization ID."""
    return uuid.uuid4()


@pytest.fixture
def holder_repo(
    async_session: AsyncSession, test_org_id: uuid.UUID, cipher: FieldCipher
) -> HolderRepository:
    return HolderRepository(async_session, test_org_id, HolderMapper(cipher))


@pytest.fixture
def alias_repo(
    async_session: AsyncSession, test_org_id: uuid.UUID, cipher: FieldCipher
) -> AliasRepository:
    return AliasRepository(async_session, test_org_id, AliasMapper(cipher))


@pytest.fixture
def link_repo(
    async_session: AsyncSession, test_org_id: uuid.UUID, cipher: FieldCipher
) -> HolderLinkRepository:
    return HolderLinkRepository(async_session, test_org_id, HolderLinkMapper(cipher))


# ----- App fixtures -----


@pytest.fixture
def app() -> FastAPI:
    """Create test FastAPI application."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create sync test client."""
    return TestClient(app)


@pytest.fixture
async def async_client(
    app: FastAPI, async_session: AsyncSession, cipher: FieldCipher, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[AsyncClient, None]:
    """Async client whose requests share the test database session."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    # Repositories built by the API default to the process-wide cipher
    monkeypatch.setattr(
        "ledgercrm.infrastructure.database.mappers.base.get_field_cipher", lambda: cipher
    )
    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
