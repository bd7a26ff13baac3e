"""
Database setup and session management.
"""

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from registrar.config import DatabaseConfig


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def get_async_database_url(config: DatabaseConfig) -> str:
    """Get the async database URL from config.

    e.g., sqlite:// -> sqlite+aiosqlite://
          postgresql:// -> postgresql+asyncpg://
    """
    url = config.url

    if "+aiosqlite" in url or "+asyncpg" in url:
        return url

    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://")
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://")

    return url


def _ensure_sqlite_parent_dir(url: str) -> None:
    """Ensure parent directory exists for a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return

    database = parsed.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_async_db_engine(config: DatabaseConfig):
    """Create an async database engine."""
    url = get_async_database_url(config)
    _ensure_sqlite_parent_dir(url)
    return create_async_engine(url, echo=False)


def create_async_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(config: DatabaseConfig):
    """Initialize the database, creating all tables."""
    engine = create_async_db_engine(config)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine
