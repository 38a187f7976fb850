"""
Database engines and sessions for the statement store.

PostgreSQL in deployment (psycopg for the sync engine used by migrations,
asyncpg for the request path); a shared SQLite file when TESTING=true so the
sync test bootstrap and the async app sessions see the same rows.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import create_engine, event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, QueuePool
from sqlalchemy.orm import sessionmaker

from statement_desk.models.database import Base


logger = logging.getLogger(__name__)

TEST_DATABASE_URL = "sqlite:///./test.db"
SLOW_QUERY_SECONDS = 0.1

# sync driver prefix -> async driver prefix
ASYNC_DRIVERS = {
    "postgresql+psycopg://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "sqlite:///": "sqlite+aiosqlite:///",
}


def _testing() -> bool:
    return os.getenv("TESTING", "false").lower() == "true"


def to_async_url(url: str) -> str:
    """Swap a sync driver prefix for its async counterpart; unknown URLs pass through."""
    for sync_prefix, async_prefix in ASYNC_DRIVERS.items():
        if url.startswith(sync_prefix):
            return async_prefix + url[len(sync_prefix):]
    return url


class DatabaseConfig:
    """Connection settings read once from the environment."""

    def __init__(self):
        self.database_url = self._sync_url()
        self.async_database_url = self._async_url()
        self.echo = os.getenv("DATABASE_ECHO", "false").lower() == "true"
        self.pool_size = int(os.getenv("DATABASE_POOL_SIZE", "10"))
        self.max_overflow = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))
        self.pool_timeout = int(os.getenv("DATABASE_POOL_TIMEOUT", "30"))
        self.pool_recycle = int(os.getenv("DATABASE_POOL_RECYCLE", "3600"))

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _sync_url(self) -> str:
        if _testing():
            return TEST_DATABASE_URL
        url = os.getenv("DATABASE_URL")
        if url:
            return url
        return "postgresql+psycopg://{user}:{password}@{host}:{port}/{name}".format(
            user=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", "postgres"),
            host=os.getenv("DB_HOST", "localhost"),
            port=os.getenv("DB_PORT", "5432"),
            name=os.getenv("DB_NAME", "statements"),
        )

    def _async_url(self) -> str:
        if _testing():
            return to_async_url(TEST_DATABASE_URL)
        return os.getenv("ASYNC_DATABASE_URL") or to_async_url(self._sync_url())

    def redacted_url(self) -> str:
        # Credentials stay out of health output
        return self.async_database_url.split("@")[-1]


db_config = DatabaseConfig()

if db_config.is_sqlite:
    engine = create_engine(
        db_config.database_url,
        echo=db_config.echo,
        connect_args={"check_same_thread": False},
    )
    # aiosqlite connections are bound to the loop that opened them (one loop per test)
    async_engine = create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo,
        poolclass=NullPool,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        db_config.database_url,
        echo=db_config.echo,
        poolclass=QueuePool,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle,
        connect_args={
            "application_name": "statement_desk",
            "options": "-c timezone=UTC",
        },
    )
    async_engine = create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_recycle=db_config.pool_recycle,
    )

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)


def _watch_slow_queries(target) -> None:
    @event.listens_for(target, "before_cursor_execute")
    def _start(conn, cursor, statement, parameters, context, executemany):  # noqa: ARG001
        context._query_start_time = time.time()

    @event.listens_for(target, "after_cursor_execute")
    def _finish(conn, cursor, statement, parameters, context, executemany):  # noqa: ARG001
        elapsed = time.time() - context._query_start_time
        if elapsed > SLOW_QUERY_SECONDS:
            logger.warning("Slow query detected: %.3fs - %s...", elapsed, statement[:100])


_watch_slow_queries(engine)
_watch_slow_queries(async_engine.sync_engine)


def create_database_tables():
    """Create the schema from metadata (tests only; deployments run Alembic)."""
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error("Failed to create database tables: %s", e)
        raise
    logger.info("Created tables: %s", ", ".join(Base.metadata.tables))


def drop_database_tables():
    try:
        Base.metadata.drop_all(bind=engine)
    except Exception as e:
        logger.error("Failed to drop database tables: %s", e)
        raise
    logger.info("Dropped statement tables")


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Async session that commits on success and rolls back on error.

    Usage:
        async with get_async_db() as db:
            await db.execute(...)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_db_dependency():
    """
    FastAPI dependency; services commit explicitly.

    Usage:
        @router.get("")
        async def list_statements(db: AsyncSession = Depends(get_async_db_dependency)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def check_async_database_connection() -> bool:
    try:
        async with get_async_db() as db:
            await db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Async database connection check failed: %s", e)
        return False


def _pool_stats(pool) -> dict:
    # NullPool keeps no connections and exposes no counters
    if not hasattr(pool, "size"):
        return {"pool": type(pool).__name__}
    return {
        "size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
    }


def get_database_info() -> dict:
    return {
        "database_url": db_config.redacted_url(),
        "backend": "sqlite" if db_config.is_sqlite else "postgresql",
        "echo": db_config.echo,
    }


async def async_database_health_check() -> dict:
    """Connectivity, pool counters and redacted connection info for /health."""
    try:
        connection_ok = await check_async_database_connection()
        return {
            "status": "healthy" if connection_ok else "unhealthy",
            "connection": connection_ok,
            "pool_stats": _pool_stats(async_engine.pool),
            "database_info": get_database_info()
        }
    except Exception as e:  # noqa: BLE001 - health endpoint reports, never raises
        return {
            "status": "unhealthy",
            "connection": False,
            "error": str(e)
        }
