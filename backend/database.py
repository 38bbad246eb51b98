"""
Database engine and session management for the catalog store.

Uses SQLAlchemy async engine (aiosqlite by default) so checkout handlers
never block the event loop on DB I/O. Tables are auto-created on server
startup via init_db(); in deployments backed by a managed database the
same metadata doubles as the schema reference.
"""
import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

# Convert sqlite:///... → sqlite+aiosqlite:///... for async driver
_raw_url = settings.database_url
if _raw_url.startswith("sqlite:///"):
    _async_url = _raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
else:
    _async_url = _raw_url

# SQLite: wait on a busy writer instead of failing fast with "database is locked"
_connect_args = (
    {"timeout": settings.sqlite_busy_timeout_seconds}
    if _async_url.startswith("sqlite")
    else {}
)

engine = create_async_engine(
    _async_url,
    echo=False,
    future=True,
    connect_args=_connect_args,
)


def enable_sqlite_savepoints(async_engine) -> None:
    """
    Make pysqlite/aiosqlite honour SAVEPOINT inside one real transaction.

    The driver otherwise defers BEGIN until the first DML statement, so a
    leading SAVEPOINT opens (and its RELEASE commits) its own transaction.

    Transactions start with BEGIN IMMEDIATE: concurrent writers queue on the
    busy timeout instead of deadlocking on a SHARED to RESERVED lock upgrade.
    """
    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


if _async_url.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def ping(db: AsyncSession) -> bool:
    """Round-trip a trivial query. Used by the health check."""
    result = await db.execute(text("SELECT 1"))
    return result.scalar() == 1


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields an async session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
