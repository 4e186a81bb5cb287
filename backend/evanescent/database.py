"""
Evanescent Backend: Database Store Handle
===========================================

What:  Async SQLAlchemy engine + session factory wrapped in an explicit
       `Database` handle, the shared declarative `Base`, and the FastAPI
       session dependency.
Why:   The store is the only shared state in the system. Constructing it
       explicitly (instead of at import time) gives it a defined lifecycle:
       opened in the lifespan at startup, disposed at shutdown, and swapped
       for a throwaway SQLite file in tests.
How:   `Database` owns the engine and session factory. The lifespan stores
       it on `app.state.database`; `get_db_session` reads it from there and
       yields one session per request, committing on success and rolling
       back on error.

Connection Pooling Strategy:
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600.
    SQLite engines use SQLAlchemy's default pool (pool sizing does not apply).
"""

import logging
from contextlib import contextmanager
from typing import Any, AsyncGenerator, Iterator, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from evanescent.config import Settings, settings as default_settings
from evanescent.exceptions import StoreError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share a single metadata
    object, which Alembic and the test fixtures use to build the schema.
    """
    pass


class Database:
    """
    Explicitly constructed store handle.

    Lifecycle:
        db = Database(url)      # engine created, no connection opened yet
        async with db.session() as session: ...
        await db.dispose()      # closes every pooled connection
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.url = url
        engine_kwargs = {"echo": echo, "pool_pre_ping": pool_pre_ping}
        if not url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        # expire_on_commit=False: rows stay readable after the request commits
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "Database":
        """Build the handle from application settings."""
        config = config or default_settings
        return cls(
            config.database_url,
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            echo=config.log_level == "DEBUG",
        )

    def session(self) -> AsyncSession:
        """Open a new session; use as `async with database.session() as s:`."""
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table known to `Base.metadata` (tests and local dev)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """
        What:  Gracefully closes all connections in the pool.
        When:  Called during application shutdown (lifespan handler).
        """
        await self.engine.dispose()
        logger.info("Database engine disposed")


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the `Database` stored on app.state
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)

    Mutating services commit before returning (a commit failure must be a
    500, and this exit code may run after the response is sent), so the
    commit here only ends read-only transactions.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Store Error Translation ───────────────────────────────────────────────
@contextmanager
def translate_store_errors(operation: str, **context: Any) -> Iterator[None]:
    """
    Wrap a block of store calls so SQLAlchemy failures surface as StoreError.

    Domain exceptions raised inside the block pass through untouched. The
    original error is logged with its traceback; the client only ever sees
    the generic StoreError message.

    Usage:
        with translate_store_errors("claim", writeup_id=writeup_id):
            result = await db.execute(stmt)
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, type(e).__name__, exc_info=True)
        raise StoreError(
            context={"operation": operation, "error_type": type(e).__name__, **context},
        ) from e
