"""
VoiceNotes Backend: Database Session Management
===============================================

What:  Async SQLAlchemy engine and session factory construction, the
       per-request session dependency, and startup readiness helpers.
How:   ``create_app()`` builds one engine and one session factory from the
       Settings and stores them on ``app.state``. ``get_db_session`` opens a
       session per request, commits on success and rolls back on error.

Connection Pooling (server databases only):
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600.
    SQLite URLs get SQLAlchemy's default pool for the driver.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from voicenotes.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, ``create_schema`` and
    Alembic's autogenerate.
    """
    pass


def is_sqlite_url(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for ``settings.database_url``.

    Pool sizing only applies to server databases; SQLite drivers pick their
    own pool class and reject the sizing arguments.
    """
    options = {"echo": settings.log_level == "DEBUG"}
    sqlite = is_sqlite_url(settings.database_url)
    if not sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    engine = create_async_engine(settings.database_url, **options)
    if sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Why: SQLite ignores FOREIGN KEY clauses unless enabled per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: ORM objects stay readable after the commit that
    # precedes response serialization.
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    1. Opens a session from the factory stored on ``app.state``
    2. Yields it to the route handler
    3. Commits on success, rolls back on any exception (then re-raises)
    4. Always closes the session, returning the connection to the pool

    Services commit their own writes before returning, so the commit here
    only finalizes read-only transactions.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def wait_for_database(engine: AsyncEngine, attempts: int) -> None:
    """
    Block startup until the database answers ``SELECT 1``.

    Retries with exponential backoff (1s, 2s, 4s ... capped at 10s) for up to
    ``attempts`` tries, logging each failed attempt. The last error is
    re-raised when the database never comes up.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type((SQLAlchemyError, OSError)),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
    logger.info("Database connection verified")


async def create_schema(engine: AsyncEngine) -> None:
    """
    Create every table registered on ``Base.metadata`` that does not exist.

    Used for SQLite development databases and the test-suite. PostgreSQL
    deployments are migrated with Alembic instead.
    """
    # Registers the models on Base.metadata.
    import voicenotes.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(engine: AsyncEngine) -> None:
    """Close all pooled connections (application shutdown)."""
    await engine.dispose()
