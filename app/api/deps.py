from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError
from app.core.security import CredentialVerifier, Subject
from app.core.settings import Settings
from app.services.booking_relay import BookingRelay
from app.services.catalog_service import CatalogReader
from app.services.intent_parser import IntentParser
from app.services.purchase_service import PurchaseCoordinator

# auto_error=False so a missing header surfaces as our own 401 body
reusable_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.db_manager.session_factory() as session:
        yield session


def get_credential(
    request: Request,
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(reusable_bearer),
) -> Optional[str]:
    """Bearer header wins; the session cookie is the fallback."""
    if bearer is not None and bearer.credentials:
        return bearer.credentials
    cookie_name = request.app.state.settings.security.SESSION_COOKIE_NAME
    cookie: Optional[str] = request.cookies.get(cookie_name)
    return cookie


def get_verifier(request: Request) -> CredentialVerifier:
    verifier: CredentialVerifier = request.app.state.verifier
    return verifier


def get_coordinator(request: Request) -> PurchaseCoordinator:
    coordinator: PurchaseCoordinator = request.app.state.coordinator
    return coordinator


def get_catalog(request: Request) -> CatalogReader:
    catalog: CatalogReader = request.app.state.catalog
    return catalog


def get_relay(request: Request) -> BookingRelay:
    relay: BookingRelay = request.app.state.relay
    return relay


def get_intent_parser(request: Request) -> IntentParser:
    parser: IntentParser = request.app.state.intent_parser
    return parser


def get_current_subject(
    credential: Optional[str] = Depends(get_credential),
    verifier: CredentialVerifier = Depends(get_verifier),
) -> Subject:
    return verifier.verify(credential)


def get_current_superuser(
    subject: Subject = Depends(get_current_subject),
) -> Subject:
    if not subject.is_superuser:
        raise ForbiddenError()
    return subject
