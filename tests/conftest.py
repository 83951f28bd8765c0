"""Shared fixtures: a fresh file-backed SQLite database per test."""
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    # Insert at front so local package imports resolve
    sys.path.insert(0, str(REPO_ROOT))

from app.core.database_manager import DatabaseManager  # noqa: E402
from app.core.security import CredentialVerifier, create_access_token  # noqa: E402
from app.core.settings import (  # noqa: E402
    DatabaseSettings,
    MonitoringSettings,
    SecuritySettings,
    Settings,
)
from app.crud import event as event_crud  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.event import Event  # noqa: E402
from app.services.purchase_service import PurchaseCoordinator  # noqa: E402

TEST_SECRET = "test-secret-key-for-ticketing"


@pytest.fixture  # type: ignore[misc]
def settings(tmp_path: Path) -> Settings:
    return Settings(
        ENVIRONMENT="test",
        CREATE_TABLES_ON_STARTUP=False,
        FIRST_SUPERUSER=None,
        FIRST_SUPERUSER_PASSWORD=None,
        PURCHASE_TIMEOUT_SECONDS=5.0,
        database=DatabaseSettings(
            DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'ticketing-test.sqlite3'}",
            SQLITE_BUSY_TIMEOUT_SECONDS=10.0,
        ),
        security=SecuritySettings(JWT_SECRET_KEY=TEST_SECRET),
        monitoring=MonitoringSettings(LOG_LEVEL="WARNING", LOG_FORMAT="text"),
    )


@pytest.fixture  # type: ignore[misc]
async def db_manager(settings: Settings) -> AsyncGenerator[DatabaseManager, None]:
    manager = DatabaseManager(settings.database)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture  # type: ignore[misc]
def verifier(settings: Settings) -> CredentialVerifier:
    return CredentialVerifier(settings.security)


@pytest.fixture  # type: ignore[misc]
def coordinator(
    db_manager: DatabaseManager, verifier: CredentialVerifier, settings: Settings
) -> PurchaseCoordinator:
    return PurchaseCoordinator(
        db_manager.session_factory, verifier, settings.PURCHASE_TIMEOUT_SECONDS
    )


@pytest.fixture  # type: ignore[misc]
def make_token(settings: Settings) -> Callable[..., str]:
    def _make_token(
        subject_id: int = 1,
        *,
        is_superuser: bool = False,
        email: str = "buyer@example.com",
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        return create_access_token(
            settings.security,
            subject_id,
            expires_delta=expires_delta,
            additional_claims={"email": email, "is_superuser": is_superuser},
        )

    return _make_token


@pytest.fixture  # type: ignore[misc]
def seed_event(db_manager: DatabaseManager) -> Callable[..., Awaitable[Event]]:
    async def _seed_event(
        tickets: int, name: str = "Spring Concert", date: str = "2030-04-01"
    ) -> Event:
        async with db_manager.get_session() as session:
            return await event_crud.create_event(session, name, date, tickets)

    return _seed_event


@pytest.fixture  # type: ignore[misc]
def read_tickets(db_manager: DatabaseManager) -> Callable[[int], Awaitable[int]]:
    async def _read_tickets(event_id: int) -> int:
        async with db_manager.get_session() as session:
            event = await event_crud.get_event(session, event_id)
            return event.tickets_available

    return _read_tickets


@pytest.fixture  # type: ignore[misc]
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    application = create_app(settings)
    await application.state.db_manager.create_all()
    yield application
    await application.state.db_manager.close()


@pytest.fixture  # type: ignore[misc]
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture  # type: ignore[misc]
def auth_headers(make_token: Callable[..., str]) -> Callable[..., dict[str, Any]]:
    def _auth_headers(**kwargs: Any) -> dict[str, Any]:
        return {"Authorization": f"Bearer {make_token(**kwargs)}"}

    return _auth_headers
