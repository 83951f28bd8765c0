"""
Monitoring & Observability Middleware
Request tracking, Prometheus metrics and structured request logging.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict

import structlog
from fastapi import Request, Response
from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)
struct_logger = structlog.get_logger(__name__)


class PrometheusMetrics:
    """Prometheus metrics collection"""

    def __init__(self) -> None:
        # HTTP metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
        )

        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            ["method", "endpoint"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.active_requests = Gauge("active_requests", "Requests being served")

        self.errors_total = Counter(
            "errors_total", "Total unhandled application errors", ["error_type", "endpoint"]
        )

        # Business metrics
        self.ticket_purchases_total = Counter(
            "ticket_purchases_total", "Purchase attempts by outcome", ["outcome"]
        )

        self.tickets_sold_total = Counter("tickets_sold_total", "Tickets sold")

    def record_request(
        self, method: str, endpoint: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics"""
        self.http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_error(self, error_type: str, endpoint: str) -> None:
        self.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()

    def record_purchase(self, outcome: str, quantity: int = 0) -> None:
        self.ticket_purchases_total.labels(outcome=outcome).inc()
        if outcome == "success":
            self.tickets_sold_total.inc(quantity)


# Registered once per process on the default registry
prometheus_metrics = PrometheusMetrics()


def _route_template(request: Request) -> str:
    """Use the route path template so ids don't explode label cardinality"""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return str(path) if path else request.url.path


def _get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return str(forwarded.split(",")[0].strip())
    return str(request.client.host) if request.client else "unknown"


class MonitoringMiddleware(BaseHTTPMiddleware):
    """
    Monitoring middleware providing:
    - Request IDs (``X-Request-ID``)
    - Prometheus request metrics
    - Structured request logging with slow-request warnings
    """

    def __init__(self, app: Any, slow_request_threshold: float = 1.0) -> None:
        super().__init__(app)
        self.metrics = prometheus_metrics
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        client_ip = _get_client_ip(request)

        start_time = time.time()
        self.metrics.active_requests.inc()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            self.metrics.record_error(e.__class__.__name__, _route_template(request))
            struct_logger.error(
                "request_failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                duration=duration,
                error_type=e.__class__.__name__,
                client_ip=client_ip,
            )
            raise
        finally:
            self.metrics.active_requests.dec()

        duration = time.time() - start_time
        self.metrics.record_request(
            request.method, _route_template(request), response.status_code, duration
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        log = struct_logger.warning if duration > self.slow_request_threshold else struct_logger.info
        log(
            "request_completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=round(duration, 4),
            client_ip=client_ip,
        )
        return response


async def get_prometheus_metrics() -> str:
    """Get Prometheus metrics"""
    return str(generate_latest().decode("utf-8"))


async def get_health_status(db_manager: Any, version: str, environment: str) -> Dict[str, Any]:
    """Health status of the service and its database"""
    db_health = await db_manager.health_check()
    healthy = db_health.get("status") == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "system": {
            "timestamp": time.time(),
            "version": version,
            "environment": environment,
        },
        "database": db_health,
        "checks": {"database": healthy},
    }
