"""
Database Configuration for AllCare

Async SQLAlchemy engine and session management for the SQL-backed
document store. PostgreSQL URLs are driven through asyncpg, SQLite
URLs through aiosqlite.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from allcare.config.settings import get_settings
from allcare.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = (
    ("postgresql://", "postgresql+asyncpg://"),
    ("postgres://", "postgresql+asyncpg://"),
    ("sqlite://", "sqlite+aiosqlite://"),
)


def normalize_database_url(database_url: str) -> str:
    """Select the async driver for a database URL."""
    for scheme, async_scheme in _ASYNC_DRIVERS:
        if database_url.startswith(scheme):
            return async_scheme + database_url[len(scheme):]
    return database_url


class DatabaseManager:
    """
    Owns the engine and session factory of one database.

    Nothing connects until the engine is first needed, so building a
    manager without a configured URL only fails on first use.

    Args:
        database_url: Overrides DATABASE_URL
        echo: Overrides DATABASE_ECHO
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        settings = get_settings()
        self._database_url = database_url or settings.database_url
        self._echo = settings.database_echo if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._connect()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._connect()
        return self._session_factory

    def _connect(self) -> None:
        if not self._database_url:
            raise ConfigurationError(
                "DATABASE_URL is required for the database store",
                missing_keys=["DATABASE_URL"],
            )

        url = normalize_database_url(self._database_url)
        self._engine = create_async_engine(url, echo=self._echo, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine created for {self._engine.url.render_as_string(hide_password=True)}")

    async def create_tables(self) -> None:
        """Create the documents table if it does not exist."""
        # Importing the model registers it on the shared metadata
        from allcare.infrastructure.db.models.document import DocumentRecord  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def ping(self) -> None:
        """Round-trip a trivial query to verify connectivity."""
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def close(self) -> None:
        """Dispose of the connection pool; the next use reconnects."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Unit of work: commits when the block exits cleanly, rolls back otherwise.

        Usage:
            async with db.session() as session:
                record = await session.get(DocumentRecord, path)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Process-wide manager for DATABASE_URL."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_db() -> None:
    """Create tables and verify the connection (app startup)."""
    db = get_db_manager()
    await db.create_tables()
    await db.ping()


async def close_db() -> None:
    """Release the connection pool (app shutdown)."""
    await get_db_manager().close()
