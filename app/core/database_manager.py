"""
Database management: engine, session factory, connection tuning and health checks
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DisconnectionError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class DatabaseManager:
    """Owns the engine and session factory for one configured database"""

    def __init__(self, settings: DatabaseSettings, application_name: str = "ticketing") -> None:
        self.settings = settings
        self.application_name = application_name
        self.database_url = settings.database_url
        self.engine: AsyncEngine = create_async_engine(
            self.database_url, **self._get_engine_kwargs(self.database_url)
        )
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._setup_event_listeners()

        logger.info(f"Database engine initialized with URL: {self._mask_url(self.database_url)}")

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    def _get_engine_kwargs(self, db_url: str) -> Dict[str, Any]:
        """Get engine configuration based on database type"""
        base_kwargs: Dict[str, Any] = {
            "echo": self.settings.DB_ECHO,
            "pool_pre_ping": self.settings.DB_POOL_PRE_PING,
        }

        url = make_url(db_url)
        if url.get_backend_name() == "sqlite":
            base_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": self.settings.SQLITE_BUSY_TIMEOUT_SECONDS,
            }
            if url.database in (None, "", ":memory:"):
                # A single shared connection keeps the in-memory database alive
                base_kwargs["poolclass"] = StaticPool
        else:
            postgres_server_settings: Dict[str, str] = {
                "application_name": self.application_name,
                "statement_timeout": str(self.settings.DB_STATEMENT_TIMEOUT),
                "lock_timeout": str(self.settings.DB_LOCK_TIMEOUT),
                "idle_in_transaction_session_timeout": str(
                    self.settings.DB_IDLE_IN_TRANSACTION_TIMEOUT
                ),
            }
            base_kwargs.update(
                {
                    "pool_size": self.settings.DB_POOL_SIZE,
                    "max_overflow": self.settings.DB_MAX_OVERFLOW,
                    "pool_timeout": self.settings.DB_POOL_TIMEOUT,
                    "pool_recycle": self.settings.DB_POOL_RECYCLE,
                    "connect_args": {
                        "command_timeout": self.settings.DB_COMMAND_TIMEOUT,
                        "server_settings": postgres_server_settings,
                    },
                }
            )
            if self.settings.DB_SSL:
                base_kwargs["connect_args"]["ssl"] = True

        return base_kwargs

    def _setup_event_listeners(self) -> None:
        """Setup connection listeners for SQLite pragmas and monitoring"""
        busy_timeout_ms = int(self.settings.SQLITE_BUSY_TIMEOUT_SECONDS * 1000)
        is_sqlite = self.is_sqlite

        @event.listens_for(self.engine.sync_engine, "connect")
        def set_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
            """Enforce constraints and bounded lock waits on every new SQLite connection"""
            if not is_sqlite:
                return
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys = ON")
                cursor.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
                cursor.execute("PRAGMA journal_mode = WAL")
            finally:
                cursor.close()

        @event.listens_for(self.engine.sync_engine, "checkout")
        def receive_checkout(
            dbapi_connection: Any, connection_record: Any, connection_proxy: Any
        ) -> None:
            connection_record.info["checkout_time"] = time.time()

        @event.listens_for(self.engine.sync_engine, "checkin")
        def receive_checkin(dbapi_connection: Any, connection_record: Any) -> None:
            checkout_time = connection_record.info.pop("checkout_time", None)
            if checkout_time is not None:
                checkout_duration = time.time() - checkout_time
                if checkout_duration > 30:
                    logger.warning(
                        f"Long-running database connection: {checkout_duration:.2f}s"
                    )

        @event.listens_for(self.engine.sync_engine, "invalidate")
        def receive_invalidate(
            dbapi_connection: Any, connection_record: Any, exception: Any
        ) -> None:
            logger.warning(f"Database connection invalidated: {exception}")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that is always closed; writes commit explicitly"""
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Create missing tables (idempotent)"""
        # Make sure every model is registered on the metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created / verified")

    async def health_check(self) -> Dict[str, Any]:
        """Database health check"""
        try:
            start_time = time.time()
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1 as health_check"))
                if result.scalar() != 1:
                    return {"status": "error", "message": "Health check query failed"}

            response_time = (time.time() - start_time) * 1000
            return {
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
                "database_url": self._mask_url(self.database_url),
            }
        except DisconnectionError as e:
            logger.error(f"Database disconnection error: {e}")
            return {"status": "error", "message": "Database disconnected"}
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "error", "message": "Database unavailable"}

    async def close(self) -> None:
        """Close database engine and all connections"""
        await self.engine.dispose()
        logger.info("Database engine closed")

    def _mask_url(self, url: str) -> str:
        """Mask sensitive information in database URL"""
        if "@" in url:
            parts = url.split("@")
            if len(parts) == 2:
                auth_part = parts[0]
                if ":" in auth_part:
                    protocol_user = auth_part.rsplit(":", 1)[0]
                    return f"{protocol_user}:***@{parts[1]}"
        return url
