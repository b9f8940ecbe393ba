"""Database engine and session factory for the SQL store backend.

Transaction Guarantees:
- Every store transaction runs on its own session
- All writes inside it are atomic
- On any exception, the entire transaction is rolled back
"""

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for ``settings.database_url``."""
    url = settings.database_url
    logger.info(f"Database URL (masked): {url[:30]}...")

    if url.startswith("sqlite"):
        return create_sqlite_engine(url, echo=settings.database_echo)

    return create_async_engine(
        url,
        pool_size=10,
        max_overflow=20,
        echo=settings.database_echo,
        pool_pre_ping=True,  # Check connection health before use
        pool_recycle=300,
        pool_timeout=30,
    )


def create_sqlite_engine(url: str, echo: bool = False) -> AsyncEngine:
    """SQLite engine with driver-level transaction handling switched off.

    The sqlite3 driver delays BEGIN and mishandles SAVEPOINT; letting
    SQLAlchemy emit BEGIN itself keeps rollbacks and nested savepoints
    correct.
    """
    engine = create_async_engine(url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,         # Manual flush for better control
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if needed."""
    from ..models import Base

    async with engine.begin() as conn:
        # In production, use Alembic migrations instead
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections."""
    await engine.dispose()
