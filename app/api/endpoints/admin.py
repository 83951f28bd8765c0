from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.security import Subject
from app.crud import event as event_crud
from app.schemas.event import Event as EventSchema
from app.schemas.event import EventCreate, EventUpdate

router = APIRouter()


@router.post(
    "/events",
    response_model=EventSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create Event",
)  # type: ignore[misc]
async def create_event(
    *,
    db: AsyncSession = Depends(deps.get_db),
    event_in: EventCreate,
    _: Subject = Depends(deps.get_current_superuser),
) -> Any:
    """
    **Create New Event** (Admin Only)

    **Request Body:**
    - `name` (string): Event title, at most 200 characters
    - `date` (string): Event date, `YYYY-MM-DD`
    - `ticketsAvailable` (integer): Initial inventory, zero or more

    **Errors:**
    - `400`: Validation error
    - `401`: Authentication required
    - `403`: Not a superuser
    """
    return await event_crud.create_event(
        db, event_in.name, event_in.date, event_in.tickets_available
    )


@router.put("/events/{event_id}", response_model=EventSchema, summary="Update Event")  # type: ignore[misc]
async def update_event(
    *,
    db: AsyncSession = Depends(deps.get_db),
    event_id: int,
    event_in: EventUpdate,
    _: Subject = Depends(deps.get_current_superuser),
) -> Any:
    """
    **Replace Event Fields** (Admin Only)

    All three fields are required and validated as on create.

    **Errors:**
    - `400`: Validation error
    - `403`: Not a superuser
    - `404`: Event not found
    """
    return await event_crud.update_event(
        db, event_id, event_in.name, event_in.date, event_in.tickets_available
    )
