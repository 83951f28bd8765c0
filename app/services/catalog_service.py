from typing import List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.crud import event as event_crud
from app.schemas.event import Event


class CatalogReader:
    """Read-only view of the committed inventory. Deliberately uncached."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_events(self) -> List[Event]:
        async with self._session_factory() as session:
            events = await event_crud.list_events(session)
            return [Event.model_validate(event) for event in events]

    async def get_event(self, event_id: int) -> Event:
        """Raises EventNotFoundError when the id is unknown."""
        async with self._session_factory() as session:
            event = await event_crud.get_event(session, event_id)
            return Event.model_validate(event)
