"""
Inventory store: durable, constraint-enforcing storage for events.

Every mutation runs inside ``db_transaction`` and is committed before the
function returns. Driver failures are re-raised as typed store errors.
"""

import asyncio
import logging
from datetime import date as calendar_date
from typing import Any, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db_utils import db_transaction, run_store_operation
from app.core.errors import (
    EventNotFoundError,
    InsufficientInventoryError,
    TransientStoreError,
    ValidationError,
)
from app.models.event import Event

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_event_fields(name: Any, date: Any, tickets_available: Any) -> Tuple[str, str, int]:
    """Return normalized (name, date, tickets) or raise ValidationError."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Invalid "name": non-empty string required')
    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f'Invalid "name": at most {NAME_MAX_LENGTH} characters')

    if isinstance(date, calendar_date):
        date = date.isoformat()
    if not isinstance(date, str) or len(date) != 10:
        raise ValidationError('Invalid "date": expected YYYY-MM-DD')
    try:
        parsed = calendar_date.fromisoformat(date)
    except ValueError:
        raise ValidationError('Invalid "date": expected YYYY-MM-DD')
    # fromisoformat also accepts forms like 20240101 on newer Pythons
    if parsed.isoformat() != date:
        raise ValidationError('Invalid "date": expected YYYY-MM-DD')

    if not _is_int(tickets_available) or tickets_available < 0:
        raise ValidationError('Invalid "ticketsAvailable": non-negative integer required')

    return name, date, tickets_available


async def _load_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    result = await db.execute(select(Event).where(Event.id == event_id))
    first: Optional[Event] = result.scalars().first()
    return first


async def get_event(db: AsyncSession, event_id: int) -> Event:
    async def operation() -> Event:
        event = await _load_event(db, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    return await run_store_operation(operation)


async def list_events(db: AsyncSession) -> List[Event]:
    """Return all events ordered by id ascending."""

    async def operation() -> List[Event]:
        result = await db.execute(select(Event).order_by(Event.id.asc()))
        return list(result.scalars().all())

    return await run_store_operation(operation)


async def create_event(
    db: AsyncSession, name: Any, date: Any, tickets_available: Any
) -> Event:
    name, date, tickets_available = validate_event_fields(name, date, tickets_available)

    async def operation() -> Event:
        async with db_transaction(db):
            db_event = Event(name=name, date=date, tickets_available=tickets_available)
            db.add(db_event)
            await db.flush()
        return db_event

    db_event = await run_store_operation(operation)
    logger.info(
        "Event created",
        extra={"event_id": db_event.id, "tickets_available": db_event.tickets_available},
    )
    return db_event


async def update_event(
    db: AsyncSession, event_id: int, name: Any, date: Any, tickets_available: Any
) -> Event:
    name, date, tickets_available = validate_event_fields(name, date, tickets_available)

    async def operation() -> Event:
        async with db_transaction(db):
            result = await db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(name=name, date=date, tickets_available=tickets_available)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise EventNotFoundError(event_id)
            event = await _load_event(db, event_id)
            if event is None:
                raise EventNotFoundError(event_id)
            await db.refresh(event)
        return event

    db_event = await run_store_operation(operation)
    logger.info("Event updated", extra={"event_id": event_id})
    return db_event


async def _apply_decrement(db: AsyncSession, event_id: int, quantity: int) -> Event:
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.tickets_available >= quantity)
        .values(tickets_available=Event.tickets_available - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await _load_event(db, event_id)
        if current is None:
            raise EventNotFoundError(event_id)
        raise InsufficientInventoryError(
            event_id=event_id,
            requested=quantity,
            available=current.tickets_available,
        )

    event = await _load_event(db, event_id)
    if event is None:
        raise EventNotFoundError(event_id)
    await db.refresh(event)
    return event


async def decrement_tickets(
    db: AsyncSession, event_id: int, quantity: int, timeout: Optional[float] = None
) -> Event:
    """
    Atomically subtract ``quantity`` from an event's availability.

    The floor check and the write are one conditional UPDATE, so no
    concurrent caller can interleave between them. Nothing changes when the
    event is missing or has fewer than ``quantity`` tickets left.

    ``timeout`` bounds the work before the commit. Once the commit has
    started it is awaited to completion, so a timeout always means the
    transaction was rolled back.

    Raises:
        EventNotFoundError: the event does not exist.
        InsufficientInventoryError: fewer than ``quantity`` tickets remain.
        TransientStoreError: timeout, lock timeout or lost connection.
        StoreConstraintError: the storage constraint rejected the write.
    """

    async def operation() -> Event:
        async with db_transaction(db):
            try:
                event = await asyncio.wait_for(
                    _apply_decrement(db, event_id, quantity), timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Decrement timed out before commit",
                    extra={"event_id": event_id, "quantity": quantity},
                )
                raise TransientStoreError()
        return event

    return await run_store_operation(operation)
