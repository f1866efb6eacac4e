"""
Async SQLAlchemy engine and sessions

One DatabaseSessionManager is created per process by the composition root
(API lifespan or worker task) and handed to the repositories that need it.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

POSTGRES_POOL_OPTIONS = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_pre_ping": True,
    "pool_recycle": 1800,
}


def async_database_url(database_url: str) -> str:
    """Point plain postgresql:// URLs at the asyncpg driver"""
    if database_url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + database_url[len("postgresql://"):]
    return database_url


class DatabaseSessionManager:
    """Owns the engine; hands out one transaction per session() block"""

    def __init__(self):
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def initialized(self) -> bool:
        return self._sessionmaker is not None

    async def init(self, database_url: str, **engine_kwargs):
        """
        Create the engine. Calling it again on an initialized manager is a no-op.

        Args:
            database_url: DATABASE_URL (postgresql:// or sqlite+aiosqlite://)
            engine_kwargs: Passed to create_async_engine (echo, poolclass, ...)
        """
        if self.initialized:
            return

        url = async_database_url(database_url)
        options = {"echo": False}
        if not url.startswith("sqlite"):
            options.update(POSTGRES_POOL_OPTIONS)
        options.update(engine_kwargs)

        self._engine = create_async_engine(url, **options)
        self._sessionmaker = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_tables(self):
        """Create invoices and product_categories (local development and tests)"""
        if self._engine is None:
            raise RuntimeError("DatabaseSessionManager.init() was not called")

        # Registers the tables on Base.metadata
        from packages.common import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Session committed on exit, rolled back on error.

        Raises:
            RuntimeError: If init() was not called
        """
        if self._sessionmaker is None:
            raise RuntimeError("DatabaseSessionManager.init() was not called")

        async with self._sessionmaker() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise
