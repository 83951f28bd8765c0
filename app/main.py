import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.cors import CORSMiddleware

from app import crud
from app.core.database_manager import DatabaseManager
from app.core.errors import ErrorCode, TicketingError
from app.core.logging_config import configure_logging
from app.core.security import CredentialVerifier
from app.core.settings import Settings, get_settings
from app.middleware.monitoring import (
    MonitoringMiddleware,
    get_health_status,
    get_prometheus_metrics,
)
from app.services.booking_relay import BookingRelay
from app.services.catalog_service import CatalogReader
from app.services.intent_parser import IntentParser
from app.services.purchase_service import PurchaseCoordinator

from .api.api import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    db_manager: DatabaseManager = app.state.db_manager
    logger.info("Starting ticketing service")

    try:
        if settings.CREATE_TABLES_ON_STARTUP:
            await db_manager.create_all()

        db_health = await db_manager.health_check()
        if db_health.get("status") == "healthy":
            logger.info("Database connection verified")
        else:
            logger.warning("Database health check failed")

        if settings.FIRST_SUPERUSER and settings.FIRST_SUPERUSER_PASSWORD:
            async with db_manager.get_session() as session:
                await crud.user.ensure_superuser(
                    session,
                    email=settings.FIRST_SUPERUSER,
                    password=settings.FIRST_SUPERUSER_PASSWORD,
                )

        yield

    except Exception as e:
        logger.error(f"Application startup failed: {e}")
        raise

    finally:
        await db_manager.close()
        logger.info("Database connections closed")


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TicketingError)  # type: ignore[misc]
    async def ticketing_exception_handler(
        request: Request, exc: TicketingError
    ) -> JSONResponse:
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc, extra={"path": request.url.path})
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.to_detail()},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)  # type: ignore[misc]
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": {
                    "code": ErrorCode.VALIDATION_ERROR.value,
                    "message": "Invalid request",
                    "errors": jsonable_encoder(exc.errors()),
                }
            },
        )

    @app.exception_handler(HTTPException)  # type: ignore[misc]
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        logger.info(
            "HTTPException occurred: %s",
            exc.detail,
            extra={"status_code": exc.status_code},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)  # type: ignore[misc]
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception occurred: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": "Internal Server Error",
                }
            },
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and every component it depends on.

    All configuration flows from the one ``settings`` object; components are
    stored on ``app.state`` and handed to endpoints through ``app.api.deps``.
    """
    settings = settings or get_settings()
    configure_logging(settings.monitoring)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Event ticketing with atomic inventory and assisted booking.",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        lifespan=lifespan,
    )

    db_manager = DatabaseManager(settings.database)
    verifier = CredentialVerifier(settings.security)
    coordinator = PurchaseCoordinator(
        db_manager.session_factory, verifier, settings.PURCHASE_TIMEOUT_SECONDS
    )
    catalog = CatalogReader(db_manager.session_factory)

    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.verifier = verifier
    app.state.coordinator = coordinator
    app.state.catalog = catalog
    app.state.relay = BookingRelay(catalog, coordinator)
    app.state.intent_parser = IntentParser(settings.llm)

    app.add_middleware(
        MonitoringMiddleware,
        slow_request_threshold=settings.monitoring.SLOW_REQUEST_THRESHOLD_SECONDS,
    )

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    _install_exception_handlers(app)

    @app.get(
        f"{settings.API_V1_PREFIX}/health", tags=["Health"], summary="Health Check"
    )  # type: ignore[misc]
    async def health_check() -> JSONResponse:
        """Service and database status; 503 when the database is unreachable."""
        result = await get_health_status(db_manager, settings.VERSION, settings.ENVIRONMENT)
        status_code = (
            status.HTTP_200_OK
            if result["status"] == "healthy"
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return JSONResponse(status_code=status_code, content=result)

    @app.get(
        f"{settings.API_V1_PREFIX}/metrics", tags=["Monitoring"], summary="Prometheus Metrics"
    )  # type: ignore[misc]
    async def metrics() -> PlainTextResponse:
        """
        Prometheus metrics endpoint for monitoring and alerting.

        Returns metrics in Prometheus exposition format.
        """
        if not settings.monitoring.ENABLE_PROMETHEUS:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Metrics endpoint is disabled"
            )

        metrics_data = await get_prometheus_metrics()
        return PlainTextResponse(
            content=metrics_data, media_type="text/plain; version=0.0.4; charset=utf-8"
        )

    return app


app = create_app()
