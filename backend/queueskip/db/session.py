"""
Async engine and session factory.

PostgreSQL runs at its default READ COMMITTED isolation: the reservation
ledger counts holds *after* acquiring the schedule row lock, and each
statement must see rows committed by the transaction that held the lock
before it. REPEATABLE READ would pin the snapshot at the first read and
undercount.

SQLite has no row locks. Transactions there start with BEGIN IMMEDIATE so the
database write lock plays the role of SELECT ... FOR UPDATE.
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from queueskip.core.config import get_settings

settings = get_settings()


def _enable_sqlite_write_locking(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop the driver from issuing its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        sqlite_engine = create_async_engine(
            url,
            echo=False,
            connect_args={"timeout": settings.DB_LOCK_TIMEOUT_SECONDS},
        )
        _enable_sqlite_write_locking(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Services commit their own units of work."""
    async with SessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
