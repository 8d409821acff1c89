"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine (connection pool for production DBs)
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request
  - unit_of_work(): Commits a multi-row state change as one transaction

Concurrency model:
  Every lifecycle operation (accept, confirm receipt, submit feedback)
  writes several rows that must commit together. The service layer wraps
  them in unit_of_work(), which commits on success and rolls back
  everything on any error.

  On PostgreSQL, competing writers are serialized by row locks
  (SELECT ... FOR UPDATE) plus guarded UPDATEs. SQLite has no row locks, so
  SQLite connections open every transaction with BEGIN IMMEDIATE: the first
  writer holds the database write lock until it commits and the second
  waits (up to SQLITE_BUSY_TIMEOUT_SECONDS), then reads the committed
  state. Both backends therefore give the same "one winner" behaviour.

Session lifecycle:
  Each API request gets its own session via get_db(). The session
  auto-commits on success and rolls back on exception.
"""

from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from donation_exchange.config import settings
from donation_exchange.exceptions import UnavailableError


def configure_sqlite(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions serialize writers and enforce foreign keys.

    The driver's own implicit BEGIN is disabled and replaced with
    BEGIN IMMEDIATE, which takes the write lock when the transaction starts
    rather than at the first write.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, applying the SQLite locking setup when needed."""
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = settings.SQLITE_BUSY_TIMEOUT_SECONDS

    new_engine = create_async_engine(database_url, echo=echo, connect_args=connect_args)
    if url.get_backend_name() == "sqlite":
        configure_sqlite(new_engine)
    return new_engine


# echo=True in debug mode logs all SQL statements
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# expire_on_commit=False prevents lazy-load errors after commit: services
# commit mid-request and keep returning the committed objects.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    including domain errors: a failed operation never persists anything.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(db: AsyncSession):
    """
    Run a block of writes as a single all-or-nothing transaction.

    Usage:
        async with unit_of_work(db):
            ...  # reads, guarded updates, inserts

    Commits when the block exits cleanly. Any exception rolls back every
    write made in the block; store failures are re-raised as
    UnavailableError so callers can decide whether to retry.
    """
    try:
        yield db
        await db.commit()
    except OperationalError as exc:
        await db.rollback()
        raise UnavailableError() from exc
    except Exception:
        await db.rollback()
        raise
