from typing import Any, Optional

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas.event import (
    BookingConfirmRequest,
    BookingIntentResponse,
    IntentParseRequest,
    PurchaseResponse,
)
from app.services.booking_relay import BookingProposal, BookingRelay
from app.services.catalog_service import CatalogReader
from app.services.intent_parser import IntentParser

router = APIRouter()


@router.post("/parse", response_model=BookingIntentResponse, summary="Parse Booking Text")  # type: ignore[misc]
async def parse_booking_text(
    parse_in: IntentParseRequest,
    catalog: CatalogReader = Depends(deps.get_catalog),
    parser: IntentParser = Depends(deps.get_intent_parser),
) -> Any:
    """
    **Propose a Booking from Free Text**

    Returns a proposal only; nothing is purchased until `/llm/confirm`.

    **Example Request:**
    ```json
    {"text": "two tickets for the spring concert please"}
    ```
    """
    events = await catalog.list_events()
    intent = await parser.parse(parse_in.text, [event.name for event in events])
    return BookingIntentResponse(
        intent=intent.intent, event=intent.event, quantity=intent.quantity
    )


@router.post("/confirm", response_model=PurchaseResponse, summary="Confirm Booking")  # type: ignore[misc]
async def confirm_booking(
    confirm_in: BookingConfirmRequest,
    credential: Optional[str] = Depends(deps.get_credential),
    relay: BookingRelay = Depends(deps.get_relay),
) -> Any:
    """
    **Confirm a Proposed Booking**

    Resolves the event by id, or by exact (case-insensitive) name, and
    purchases through the same path as `/events/{id}/purchase`.

    **Errors:**
    - `400`: Missing or invalid quantity
    - `401`: Missing or invalid credential
    - `409`: Not enough tickets left
    - `422`: Event could not be resolved to exactly one event
    """
    result = await relay.confirm(
        BookingProposal(
            quantity=confirm_in.quantity,
            event_id=confirm_in.event_id,
            event_name=confirm_in.event_name,
        ),
        credential,
    )
    return PurchaseResponse(
        event_id=result.event_id,
        purchased=result.purchased,
        remaining_tickets=result.remaining_tickets,
    )
