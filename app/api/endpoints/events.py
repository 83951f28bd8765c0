from typing import Any, List, Optional

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas.event import Event as EventSchema
from app.schemas.event import PurchaseRequest, PurchaseResponse
from app.services.catalog_service import CatalogReader
from app.services.purchase_service import PurchaseCoordinator

router = APIRouter()


@router.get("", response_model=List[EventSchema], summary="List Events")  # type: ignore[misc]
async def read_events(
    catalog: CatalogReader = Depends(deps.get_catalog),
) -> Any:
    """
    **Retrieve All Events**

    Returns every event ordered by id, reflecting all committed purchases.
    Nothing is cached between calls.

    **Example Request:**
    ```bash
    GET /api/v1/events
    ```
    """
    return await catalog.list_events()


@router.get("/{event_id}", response_model=EventSchema, summary="Get Event")  # type: ignore[misc]
async def read_event(
    event_id: int,
    catalog: CatalogReader = Depends(deps.get_catalog),
) -> Any:
    """
    **Get Event by ID**

    **Errors:**
    - `404`: Event not found
    """
    return await catalog.get_event(event_id)


@router.post(
    "/{event_id}/purchase", response_model=PurchaseResponse, summary="Purchase Tickets"
)  # type: ignore[misc]
async def purchase_tickets(
    event_id: int,
    purchase_in: Optional[PurchaseRequest] = None,
    credential: Optional[str] = Depends(deps.get_credential),
    coordinator: PurchaseCoordinator = Depends(deps.get_coordinator),
) -> Any:
    """
    **Purchase Tickets**

    Atomically buys `quantity` tickets. Either the full quantity is sold or
    nothing changes.

    **Authentication:** `Authorization: Bearer <token>` or the session cookie.

    **Request Body:**
    ```json
    {"quantity": 2}
    ```

    **Errors:**
    - `400`: Invalid event id or quantity
    - `401`: Missing, invalid or expired credential
    - `404`: Event not found
    - `409`: Not enough tickets left
    - `503`: Store temporarily unavailable; safe to retry
    """
    quantity = purchase_in.quantity if purchase_in is not None else None
    result = await coordinator.purchase(event_id, quantity, credential)
    return PurchaseResponse(
        event_id=result.event_id,
        purchased=result.purchased,
        remaining_tickets=result.remaining_tickets,
    )
