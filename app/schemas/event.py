from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventBase(CamelModel):
    # Loosely typed on purpose: the inventory store owns field validation
    name: Any = None
    date: Any = None
    tickets_available: Any = None


class EventCreate(EventBase):
    pass


class EventUpdate(EventBase):
    pass


class Event(CamelModel):
    id: int
    name: str
    date: str
    tickets_available: int

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class PurchaseRequest(CamelModel):
    quantity: Any = None


class PurchaseResponse(CamelModel):
    event_id: int
    purchased: int
    remaining_tickets: int


class BookingConfirmRequest(CamelModel):
    event_id: Optional[int] = None
    event_name: Optional[str] = None
    quantity: Optional[Any] = Field(default=None, description="Tickets to buy")


class IntentParseRequest(CamelModel):
    text: str = ""


class BookingIntentResponse(CamelModel):
    intent: str
    event: Optional[str] = None
    quantity: Optional[int] = None
