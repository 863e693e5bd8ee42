"""
Merit Badge Counselor Backend — Database Handle & Session Management
=====================================================================

What:  Async SQLAlchemy engine + session factory wrapped in an explicit
       `Database` handle, plus the FastAPI session dependency.
Why:   The connection pool is a resource with a lifecycle: opened at startup,
       disposed at shutdown, and passed to whoever needs it. Nothing here is
       created at import time.
How:   `create_app()`'s lifespan builds a `Database` and stores it on
       `app.state.database`; `get_db_session` pulls it from the request.
Who:   Route handlers via Depends(get_db_session); the seed script and tests
       construct their own handle.

Connection Pooling:
    pool_size=10:     Bounded pool shared by all requests (DB_POOL_SIZE)
    max_overflow=0:   No burst connections beyond the pool by default
    pool_pre_ping:    Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour
"""

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from counselor.config import Settings, settings as default_settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers every model on one metadata object, which Alembic reads
    for migrations and tests use for `create_all`.
    """
    pass


class Database:
    """
    Owns the engine (connection pool) and the session factory.

    Lifecycle:
        db = Database(settings)     # pool configured, no connections yet
        async with db.session() as session: ...
        await db.dispose()          # closes every pooled connection
    """

    def __init__(self, config: Optional[Settings] = None, url: Optional[str] = None):
        config = config or default_settings
        self.url = url or config.database_url

        engine_kwargs = {
            "pool_pre_ping": config.db_pool_pre_ping,
            "echo": config.log_level == "DEBUG",
        }
        # SQLite (tests, local tooling) uses a pool class without size limits
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=config.db_pool_size,
                max_overflow=config.db_max_overflow,
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)

        # expire_on_commit=False: generated ids and loaded attributes stay
        # readable after the writer commits
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        """New session bound to this handle's pool."""
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table known to `Base.metadata` (tests and local setups)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Cheap connectivity probe: SELECT 1."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Gracefully closes all connections in the pool."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Takes the `Database` handle the lifespan stored on app.state
        2. Yields a fresh session to the route handler
        3. On error: rolls back whatever transaction is still open
        4. Always: closes the session (returns connection to pool)

    Transaction boundaries belong to the services: the application writer
    commits its own unit of work, readers never write.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
