"""
Database connection management and session handling.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from redis.exceptions import RedisError
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)

from .config import get_settings
from .models.base import Base
from .cache import init_cache, close_cache

logger = logging.getLogger(__name__)

# Global engine and session factory
engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    The driver's own deferred BEGIN lets two writers both read a row and then
    race for the lock; BEGIN IMMEDIATE serializes them the way row locks do
    on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_database_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create and configure the database engine with connection pooling."""
    settings = get_settings()
    url = database_url or settings.database_url

    if _is_sqlite(url):
        sqlite_engine = create_async_engine(
            url,
            echo=settings.debug,
            connect_args={"timeout": 30},
        )
        _use_immediate_transactions(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        url,
        # Connection pool configuration for concurrent access
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,   # Recycle connections every hour
        echo=settings.debug,
        connect_args={
            "server_settings": {
                "application_name": "artgram_booking_platform",
            }
        }
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory for database sessions."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=True,
        autocommit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables known to the model metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    """Initialize database connection and create tables."""
    global engine, async_session_factory

    logger.info("Initializing database connection...")

    engine = create_database_engine()
    async_session_factory = create_session_factory(engine)

    await create_tables(engine)

    # The availability cache is optional; bookings never depend on it
    try:
        await init_cache()
    except RedisError as e:
        logger.warning(f"Redis unavailable, availability cache disabled: {e}")

    logger.info("Database and cache initialized successfully")


async def close_database() -> None:
    """Close database connections."""
    global engine

    if engine:
        logger.info("Closing database connections...")
        await engine.dispose()
        logger.info("Database connections closed")

    await close_cache()


def transaction(session: AsyncSession):
    """
    Open a write transaction on the session.

    When the session already has a transaction in progress (for example
    after a read on the same session), the work runs in a savepoint and is
    committed together with the outer transaction.
    """
    if session.in_transaction():
        return session.begin_nested()
    return session.begin()


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session with automatic cleanup.

    Usage:
        async with get_db_session() as session:
            result = await session.execute(query)

    Services open their own transactions for writes; anything left open by
    reads is committed here.
    """
    if async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for getting database sessions.

    Usage in FastAPI endpoints:
        @app.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_db_session() as session:
        yield session
