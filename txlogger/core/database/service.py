"""
Async database engine and session management.

Purpose
-------
One AsyncEngine per process, with two scopes:

- `get_session()` for reads and manual control
- `get_transaction()` for writes: commit on success, rollback on any
  exception (the exception is re-raised)

Never call `session.commit()` inside repository code; the transaction scope
owns it.

Configuration
-------------
DATABASE_URL and DATABASE_ECHO come from Config unless `initialize()` is
given explicit values (tests point it at a temporary SQLite file).
SQLite connections get `PRAGMA foreign_keys=ON` so child log entries are
removed with their parent record.

Usage
-----
>>> await DatabaseService.initialize()
>>> async with DatabaseService.get_transaction() as session:
...     session.add(record)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import MetaData, event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from txlogger.core.config.config import Config
from txlogger.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseService:
    """
    Centralized async engine and session management.

    Lifecycle: initialize() → get_session()/get_transaction() → shutdown().
    """

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _url_scheme: str = "unknown"
    _init_lock: Optional[asyncio.Lock] = None

    _metrics: dict[str, float] = {
        "transactions_committed": 0,
        "transactions_rolled_back": 0,
        "total_transaction_ms": 0.0,
    }

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    async def initialize(cls, url: Optional[str] = None, *, echo: Optional[bool] = None) -> None:
        """
        Create the engine and session factory.

        Idempotent: a second call while initialized is a no-op.

        Raises
        ------
        DatabaseInitializationError
            If the URL is missing or engine creation fails.
        """
        async with cls._lock():
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            database_url = url or Config.DATABASE_URL
            if not database_url or not isinstance(database_url, str):
                raise DatabaseInitializationError("DATABASE_URL must be configured as a non-empty string")

            echo = Config.DATABASE_ECHO if echo is None else echo
            is_sqlite = database_url.startswith("sqlite")

            try:
                engine_kwargs: dict[str, Any] = {"echo": echo}
                if is_sqlite:
                    engine_kwargs["poolclass"] = NullPool
                else:
                    engine_kwargs.update({"pool_size": 5, "max_overflow": 10, "pool_recycle": 1800})

                cls._engine = create_async_engine(database_url, **engine_kwargs)
                if is_sqlite:
                    event.listen(cls._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

                cls._session_factory = async_sessionmaker(
                    bind=cls._engine, class_=AsyncSession, expire_on_commit=False
                )
                cls._url_scheme = database_url.split(":", 1)[0]
            except Exception as exc:
                cls._engine = None
                cls._session_factory = None
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(f"Database initialization failed: {exc}") from exc

            logger.info("DatabaseService initialized", extra={"url_scheme": cls._url_scheme})

    @classmethod
    async def create_all(cls, metadata: MetaData) -> None:
        """Create every table in `metadata` that does not exist yet."""
        engine = cls._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database schema ensured", extra={"tables": sorted(metadata.tables)})

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. Safe to call when not initialized."""
        async with cls._lock():
            if cls._engine is None:
                return
            try:
                await cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._session_factory = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    async def health_check(cls) -> bool:
        """`SELECT 1` liveness probe; False on any database error."""
        try:
            async with cls.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (DatabaseNotInitializedError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    @classmethod
    def get_metrics(cls) -> dict[str, float]:
        return dict(cls._metrics)

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            raise DatabaseNotInitializedError("DatabaseService.initialize() has not been called")
        return cls._engine

    # ========================================================================
    # Session scopes
    # ========================================================================

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Session without transaction management; caller commits if needed."""
        cls._require_engine()
        assert cls._session_factory is not None

        async with cls._session_factory() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """Atomic unit of work: commit on success, rollback and re-raise on error."""
        cls._require_engine()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            try:
                yield session
                await session.commit()
            except OperationalError as exc:
                await session.rollback()
                cls._metrics["transactions_rolled_back"] += 1
                logger.error(
                    "OperationalError in transaction; rolled back",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise
            except Exception as exc:
                await session.rollback()
                cls._metrics["transactions_rolled_back"] += 1
                logger.warning(
                    "Transaction rolled back",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )
                raise

            duration_ms = (time.perf_counter() - start) * 1000.0
            cls._metrics["transactions_committed"] += 1
            cls._metrics["total_transaction_ms"] += duration_ms
            logger.debug("Database transaction committed", extra={"duration_ms": round(duration_ms, 2)})
