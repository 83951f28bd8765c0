"""
Booking relay: turns a confirmed natural-language proposal into a purchase.

The relay owns no inventory logic. It pins the proposal to exactly one
event from a fresh catalog snapshot and hands off to the purchase
coordinator, so the atomicity and authentication guarantees are the same
as for a direct purchase.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from app.core.errors import BookingResolutionError, InvalidRequestError
from app.schemas.event import Event
from app.services.catalog_service import CatalogReader
from app.services.purchase_service import PurchaseCoordinator, PurchaseResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingProposal:
    quantity: Any
    event_id: Optional[int] = None
    event_name: Optional[str] = None


def normalize_event_name(name: str) -> str:
    return " ".join(name.split()).casefold()


class BookingRelay:
    def __init__(self, catalog: CatalogReader, coordinator: PurchaseCoordinator) -> None:
        self._catalog = catalog
        self._coordinator = coordinator

    async def confirm(
        self, proposal: BookingProposal, credential: Optional[str]
    ) -> PurchaseResult:
        """
        Resolve ``proposal`` to one event and purchase through the coordinator.

        A missing quantity is rejected rather than defaulted. Resolution
        failures are raised before any purchase is attempted.
        """
        quantity = proposal.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidRequestError("Invalid ticket quantity: positive integer required")

        events = await self._catalog.list_events()
        event = self._resolve(proposal, events)

        logger.info(
            "Relaying confirmed booking",
            extra={"event_id": event.id, "quantity": quantity},
        )
        return await self._coordinator.purchase(event.id, quantity, credential)

    @staticmethod
    def _resolve(proposal: BookingProposal, events: List[Event]) -> Event:
        if proposal.event_id is not None:
            for event in events:
                if event.id == proposal.event_id:
                    return event
            raise BookingResolutionError(f"No event with id {proposal.event_id}")

        if not proposal.event_name or not proposal.event_name.strip():
            raise BookingResolutionError("An event id or event name is required")

        wanted = normalize_event_name(proposal.event_name)
        matches = [event for event in events if normalize_event_name(event.name) == wanted]
        if not matches:
            raise BookingResolutionError(f'No event named "{proposal.event_name}"')
        if len(matches) > 1:
            raise BookingResolutionError(
                f'Event name "{proposal.event_name}" is ambiguous; use an event id'
            )
        return matches[0]
