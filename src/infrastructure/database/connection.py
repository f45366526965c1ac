# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

One PostgreSQL database holds the directory tables, the learning event
log and the stats projections. Uses SQLAlchemy 2.0 async API with the
asyncpg driver.

Example:
    from src.infrastructure.database.connection import (
        init_database,
        get_session,
    )

    # Initialize at application startup
    await init_database(settings)

    # Use in request handlers
    async with get_session() as session:
        result = await session.execute(select(Employee))
        employees = result.scalars().all()
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state for the database connection
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

# Per-thread engines for Dramatiq worker threads
_thread_local = threading.local()


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_database(settings: "Settings") -> None:
    """Initialize the database connection pool.

    This should be called once at application (or worker) startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_async_engine(
            settings.db.url,
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=False,
        )

        _sessionmaker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Close the database connection pool."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the database sessionmaker.

    Returns:
        The SQLAlchemy async sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session.

    The session is committed on success and rolled back on exception.
    SQLAlchemy failures are wrapped in DatabaseError.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    async with _session_scope(get_sessionmaker()) as session:
        yield session


@asynccontextmanager
async def _session_scope(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Check if the database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def _get_worker_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker for the current worker thread.

    SQLAlchemy async engines are bound to the event loop they were created
    in, and each Dramatiq worker thread runs its own loop (see
    ``background.tasks.base``), so each thread gets its own engine.
    """
    sessionmaker = getattr(_thread_local, "sessionmaker", None)

    if sessionmaker is None:
        from src.core.config import get_settings

        settings = get_settings()
        engine = create_async_engine(
            settings.db.url,
            pool_size=settings.worker.threads,
            max_overflow=0,
            pool_pre_ping=True,
            echo=False,
        )
        sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        _thread_local.engine = engine
        _thread_local.sessionmaker = sessionmaker

    return sessionmaker


@asynccontextmanager
async def get_worker_session() -> AsyncIterator[AsyncSession]:
    """Get an async session inside a Dramatiq worker thread.

    Same commit/rollback behavior as ``get_session``.
    """
    async with _session_scope(_get_worker_sessionmaker()) as session:
        yield session


def clear_worker_connections() -> None:
    """Dispose of the current thread's engine.

    Called when a worker thread gets a new event loop; the engine is
    recreated on next use, bound to the new loop. The old loop is already
    closed, so pooled connections are discarded without being closed.
    """
    engine = getattr(_thread_local, "engine", None)
    if engine is not None:
        engine.sync_engine.dispose(close=False)
        logger.debug("Disposed worker database engine")

    _thread_local.engine = None
    _thread_local.sessionmaker = None
