"""
Shared fixtures for unit tests.
"""

import os
import tempfile

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from registrar.models import Base
from registrar.services.policy_engine import PolicyEngine
from registrar.services.policy_store import PolicyStore


SCENARIO_POLICY = {
    "password.min.length": "8",
    "password.max.length": "30",
    "password.min.uppercase": "1",
    "password.min.lowercase": "1",
    "password.min.digits": "1",
    "password.min.special": "1",
    "password.allowed.special": "-.#&",
}


@pytest_asyncio.fixture
async def db_engine():
    """Create a temporary database engine for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "test.db")
        engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        yield engine

        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    """Create a session factory for testing."""
    return async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def store(session_factory):
    """Create an empty policy store."""
    return PolicyStore(session_factory)


@pytest_asyncio.fixture
async def seeded_store(store):
    """Create a policy store holding the standard test policy."""
    for key, value in SCENARIO_POLICY.items():
        await store.upsert(key, value)
    return store


@pytest_asyncio.fixture
async def engine(seeded_store):
    """Create a policy engine over the standard test policy."""
    return PolicyEngine(seeded_store)
