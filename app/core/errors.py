"""Error taxonomy shared by the inventory store, the purchase coordinator and the API."""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    FORBIDDEN = "FORBIDDEN"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    CONFLICT = "CONFLICT"
    BOOKING_UNRESOLVED = "BOOKING_UNRESOLVED"
    TRANSIENT_STORE_FAILURE = "TRANSIENT_STORE_FAILURE"
    STORE_CONSTRAINT_VIOLATION = "STORE_CONSTRAINT_VIOLATION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TicketingError(Exception):
    """Base error with code, user-safe message and HTTP status."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message}


class ValidationError(TicketingError):
    """Raised when event fields have a bad shape or range."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class InvalidRequestError(TicketingError):
    code = ErrorCode.INVALID_REQUEST
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(TicketingError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class EventNotFoundError(NotFoundError):
    """Raised when an event id does not resolve to a stored event."""

    code = ErrorCode.EVENT_NOT_FOUND
    default_message = "Event not found"

    def __init__(self, event_id: Any) -> None:
        super().__init__()
        self.event_id = event_id


class UnauthenticatedError(TicketingError):
    code = ErrorCode.UNAUTHENTICATED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidCredentialError(TicketingError):
    code = ErrorCode.INVALID_CREDENTIAL
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired credential"


class ForbiddenError(TicketingError):
    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Administrative privileges required"


class InsufficientInventoryError(TicketingError):
    """Raised when fewer tickets remain than were requested."""

    code = ErrorCode.INSUFFICIENT_INVENTORY
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, event_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Not enough tickets available: requested {requested}, {available} left"
        )
        self.event_id = event_id
        self.requested = requested
        self.available = available


class ConflictError(TicketingError):
    code = ErrorCode.CONFLICT
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class BookingResolutionError(TicketingError):
    """Raised when a booking proposal cannot be pinned to exactly one event."""

    code = ErrorCode.BOOKING_UNRESOLVED
    status_code = 422
    default_message = "Could not resolve the requested event"


class TransientStoreError(TicketingError):
    """Timeout or lost connection; retrying the whole purchase is safe."""

    code = ErrorCode.TRANSIENT_STORE_FAILURE
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Ticket store temporarily unavailable, please retry"


class StoreConstraintError(TicketingError):
    """A storage-level constraint rejected a write."""

    code = ErrorCode.STORE_CONSTRAINT_VIOLATION
    status_code = status.HTTP_409_CONFLICT
    default_message = "Storage constraint violated"


class InternalError(TicketingError):
    code = ErrorCode.INTERNAL_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"
