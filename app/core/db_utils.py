import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, TimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreConstraintError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _commit_or_rollback(db: AsyncSession) -> None:
    try:
        await db.commit()
    except BaseException:
        await db.rollback()
        raise


@asynccontextmanager
async def db_transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Commit on success, roll back on any error or cancellation.

    A cancellation that arrives while the commit is in flight does not
    abandon it: the commit runs to completion (or rolls back) before the
    cancellation propagates, so the caller never sees a half-finished
    transaction.
    """
    try:
        yield db
    except BaseException:
        # Rollback must finish even if the surrounding task is being cancelled
        await asyncio.shield(db.rollback())
        raise

    commit = asyncio.ensure_future(_commit_or_rollback(db))
    try:
        await asyncio.shield(commit)
    except asyncio.CancelledError:
        await asyncio.wait([commit])
        if commit.exception() is not None:
            logger.warning(f"Commit failed after cancellation: {commit.exception()}")
        else:
            logger.warning("Cancelled during commit; the commit completed")
        raise


def translate_store_error(exc: Exception) -> Optional[Exception]:
    """Map a driver/pool error onto the store's typed failures."""
    if isinstance(exc, IntegrityError):
        logger.error(f"Storage constraint violated: {exc.orig}")
        return StoreConstraintError()
    if isinstance(exc, (OperationalError, TimeoutError)):
        return TransientStoreError()
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return TransientStoreError()
    return None


async def run_store_operation(operation: Callable[[], Awaitable[T]]) -> T:
    """Await a store call, re-raising driver failures as typed store errors."""
    try:
        return await operation()
    except (DBAPIError, TimeoutError) as exc:
        translated = translate_store_error(exc)
        if translated is None:
            raise
        raise translated from exc
