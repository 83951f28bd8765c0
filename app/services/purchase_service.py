"""
Purchase coordinator: the single entry point for ticket purchases.

The pipeline is strictly linear:

1. validate the request shape,
2. resolve the credential to a subject (no session is opened before this),
3. run the store's atomic decrement, bounded up to (not including) the commit,
4. classify every failure into the error taxonomy.

Nothing is retried here. A retried purchase that succeeds consumes more
inventory, so callers decide whether a retry reflects user intent.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import (
    EventNotFoundError,
    InsufficientInventoryError,
    InternalError,
    InvalidRequestError,
    StoreConstraintError,
    TicketingError,
    TransientStoreError,
)
from app.core.security import CredentialVerifier, Subject
from app.crud import event as event_crud
from app.middleware.monitoring import prometheus_metrics
from app.models.event import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    event_id: int
    purchased: int
    remaining_tickets: int
    subject: Subject


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class PurchaseCoordinator:
    """Composes authentication, validation and the atomic decrement."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        verifier: CredentialVerifier,
        timeout_seconds: float,
    ) -> None:
        self._session_factory = session_factory
        self._verifier = verifier
        self._timeout_seconds = timeout_seconds

    async def purchase(
        self, event_id: Any, quantity: Any, credential: Optional[str]
    ) -> PurchaseResult:
        """
        Buy ``quantity`` tickets for ``event_id`` on behalf of the credential's subject.

        Raises:
            InvalidRequestError: event id or quantity is not a positive integer.
            UnauthenticatedError: no credential.
            InvalidCredentialError: credential invalid or expired.
            EventNotFoundError: unknown event.
            InsufficientInventoryError: not enough tickets; nothing changed.
            TransientStoreError: timeout or lost connection; nothing changed.
            InternalError: anything unexpected; nothing changed.
        """
        if not _positive_int(event_id):
            self._record("invalid_request")
            raise InvalidRequestError("Invalid event id")
        if not _positive_int(quantity):
            self._record("invalid_request")
            raise InvalidRequestError("Invalid ticket quantity: positive integer required")

        try:
            subject = self._verifier.verify(credential)
        except TicketingError as e:
            self._record(e.code.value.lower())
            raise

        log_context = {
            "event_id": event_id,
            "quantity": quantity,
            "subject_id": subject.id,
        }

        try:
            event = await self._decrement(event_id, quantity)
        except (EventNotFoundError, InsufficientInventoryError) as e:
            logger.info(f"Purchase rejected: {e.code.value}", extra=log_context)
            self._record(e.code.value.lower())
            raise
        except TransientStoreError as e:
            logger.warning("Purchase failed on a transient store error", extra=log_context)
            self._record(e.code.value.lower())
            raise
        except StoreConstraintError as e:
            logger.error(f"Storage constraint fired during purchase: {e}", extra=log_context)
            self._record("internal_error")
            raise InternalError() from e
        except Exception as e:
            logger.exception("Unexpected purchase failure", extra=log_context)
            self._record("internal_error")
            raise InternalError() from e

        logger.info(
            "Purchase succeeded",
            extra={**log_context, "remaining_tickets": event.tickets_available},
        )
        self._record("success", quantity)
        return PurchaseResult(
            event_id=event.id,
            purchased=quantity,
            remaining_tickets=event.tickets_available,
            subject=subject,
        )

    async def _decrement(self, event_id: int, quantity: int) -> Event:
        async with self._session_factory() as session:
            return await event_crud.decrement_tickets(
                session, event_id, quantity, timeout=self._timeout_seconds
            )

    @staticmethod
    def _record(outcome: str, quantity: int = 0) -> None:
        prometheus_metrics.record_purchase(outcome, quantity)
