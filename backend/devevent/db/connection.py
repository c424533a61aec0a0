"""
Process-wide database connection manager.

One ConnectionManager is built per process (see main.py) and handed to
request handlers through the `get_connection_manager` dependency.

Lifecycle:
    uninitialized --acquire()--> connecting --ok--> connected
                                     |
                                     +--error--> failed --acquire()--> connecting

Concurrent callers that arrive while a connection attempt is in flight
await that same attempt, so at most one attempt runs at any time. A failed
attempt is dropped, never cached; the next acquire() starts a fresh one.
"""

import asyncio
import enum
from typing import Awaitable, Callable, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from devevent.core.config import Settings
from devevent.core.errors import ConfigurationError, DatabaseConnectionError
from devevent.core.logging import get_logger
from devevent.core.metrics import record_connection_attempt
from devevent import models  # noqa: F401 - register tables on Base.metadata
from devevent.db.base import Base

logger = get_logger(__name__)

Connector = Callable[[str], Awaitable[AsyncEngine]]


class ConnectionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


def _engine_options(url: str, settings: Settings) -> dict:
    options = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return options


class ConnectionManager:
    """Owns the single shared AsyncEngine of the process."""

    def __init__(self, settings: Settings, connector: Optional[Connector] = None):
        self._settings = settings
        self._connector = connector or self._open_engine
        self._engine: Optional[AsyncEngine] = None
        self._pending: Optional[asyncio.Task] = None
        self._state = ConnectionState.UNINITIALIZED

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def _open_engine(self, url: str) -> AsyncEngine:
        engine = create_async_engine(url, **_engine_options(url, self._settings))
        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                # Tables and indexes (unique slug, unique booking pair) are
                # ensured on connect, not through migrations.
                await conn.run_sync(Base.metadata.create_all)
        except BaseException:
            await engine.dispose()
            raise
        return engine

    async def acquire(self) -> AsyncEngine:
        """Return the shared engine, connecting on first use."""
        if self._engine is not None:
            return self._engine

        if self._pending is not None and self._pending.cancelled():
            self._pending = None

        if self._pending is None:
            url = self._settings.DATABASE_URL
            if not url:
                raise ConfigurationError(
                    "Please define the DATABASE_URL environment variable inside .env"
                )
            self._state = ConnectionState.CONNECTING
            self._pending = asyncio.ensure_future(self._connector(url))
            logger.info("database_connecting")

        pending = self._pending
        try:
            # shield: a cancelled caller must not cancel the shared attempt
            engine = await asyncio.shield(pending)
        except Exception as e:
            if self._pending is pending:
                self._pending = None
                self._state = ConnectionState.FAILED
                record_connection_attempt(success=False)
                logger.error("database_connection_failed", error=str(e))
            if isinstance(e, DatabaseConnectionError):
                raise
            raise DatabaseConnectionError("Could not connect to the database") from e

        if self._engine is None:
            self._engine = engine
            self._pending = None
            self._state = ConnectionState.CONNECTED
            record_connection_attempt(success=True)
            logger.info("database_connected")
        return self._engine

    async def dispose(self) -> None:
        """Dispose the engine on shutdown. A later acquire() reconnects."""
        engine, self._engine = self._engine, None
        self._pending = None
        self._state = ConnectionState.UNINITIALIZED
        if engine is not None:
            await engine.dispose()
            logger.info("database_disposed")
