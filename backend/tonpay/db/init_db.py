"""
Database Initialization

Creates the SQLite orders table and the async SQLAlchemy engine used by
OrderStore. Engines are built per application instance from explicit
settings; nothing here is created at import time.
"""
import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base

logger = logging.getLogger(__name__)


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    """
    Per-connection SQLite settings.

    WAL lets readers proceed while the confirmation UPDATE holds the write
    lock; the busy timeout makes concurrent writers wait instead of failing.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")  # 30 second timeout
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_path: str) -> AsyncEngine:
    """
    Create an aiosqlite-backed async engine for the given database file.

    The parent directory is created if missing.
    """
    db_path = Path(database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=False,
        connect_args={
            "timeout": 30,  # 30 second timeout for lock acquisition
            "check_same_thread": False
        },
        pool_pre_ping=True,
    )
    event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


async def initialize_database(engine: AsyncEngine) -> None:
    """
    Create all tables and indexes if they do not exist yet.

    Called during application startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database initialized at {engine.url.database}")
