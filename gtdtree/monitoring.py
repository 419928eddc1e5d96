"""
Monitoring and observability utilities for the item tree service.

Provides:
- Prometheus metrics (requests, latencies, errors, structural tree operations)
- Request tracing (unique request IDs)
- Health information for the database
"""
import re
import time
import uuid
import logging
from typing import Callable, Dict, Any
from contextvars import ContextVar

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, Gauge, generate_latest

# Request context variable for tracing
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

http_requests_total = Counter(
    "gtdtree_http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

http_request_duration_seconds = Histogram(
    "gtdtree_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_errors_total = Counter(
    "gtdtree_http_errors_total",
    "Total number of HTTP errors",
    ["method", "endpoint", "status_code", "error_type"]
)

tree_operations_total = Counter(
    "gtdtree_tree_operations_total",
    "Structural tree operations by outcome",
    ["operation", "outcome"]
)

service_uptime_seconds = Gauge(
    "gtdtree_service_uptime_seconds",
    "Service uptime in seconds"
)

service_start_time = time.time()

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get("")


def set_request_id(request_id: str) -> None:
    """Set the request ID in context."""
    request_id_var.set(request_id)


def record_tree_operation(operation: str, outcome: str) -> None:
    """Count one structural operation ('ok', 'noop' or the error class name)."""
    tree_operations_total.labels(operation=operation, outcome=outcome).inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for collecting Prometheus metrics and request tracing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        set_request_id(request_id)

        endpoint = self._get_endpoint_path(request.url.path)
        start_time = time.time()
        service_uptime_seconds.set(time.time() - service_start_time)

        logger.debug(
            "Request started",
            extra={"request_id": request_id, "method": request.method, "path": request.url.path}
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "Request failed with exception",
                exc_info=True,
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_seconds": duration,
                    "exception_type": type(e).__name__,
                }
            )
            http_errors_total.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_type="exception"
            ).inc()
            raise

        status_code = response.status_code
        duration = time.time() - start_time
        http_requests_total.labels(
            method=request.method, endpoint=endpoint, status_code=status_code
        ).inc()
        http_request_duration_seconds.labels(
            method=request.method, endpoint=endpoint, status_code=status_code
        ).observe(duration)

        if status_code >= 400:
            error_type = "client_error" if status_code < 500 else "server_error"
            http_errors_total.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
                error_type=error_type
            ).inc()
            logger.warning(
                f"Request error {status_code} on {request.method} {request.url.path}",
                extra={"request_id": request_id, "duration_seconds": duration}
            )
        else:
            logger.info(
                f"{request.method} {request.url.path} -> {status_code} in {duration:.4f}s",
                extra={"request_id": request_id}
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Trace-ID"] = request_id
        return response

    @staticmethod
    def _get_endpoint_path(path: str) -> str:
        """Normalize endpoint path for metrics (remove IDs, etc.)."""
        path = _UUID_RE.sub("{id}", path)
        path = re.sub(r"/\d+", "/{id}", path)
        return path[:100]


def get_metrics() -> str:
    """Get Prometheus metrics in text format."""
    return generate_latest().decode("utf-8")


def check_database_health(db) -> Dict[str, Any]:
    """
    Check database connectivity and health.

    Args:
        db: ItemDatabase instance

    Returns:
        Dictionary with database health status
    """
    start_time = time.time()
    try:
        with db.session() as store:
            item_count = store.count_live_items()
        return {
            "status": "healthy",
            "connectivity": "connected",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
            "live_items": item_count,
        }
    except Exception as e:
        response_time_ms = round((time.time() - start_time) * 1000, 2)
        logger.warning(
            "Database health check failed",
            extra={"error_type": type(e).__name__, "response_time_ms": response_time_ms}
        )
        return {
            "status": "unhealthy",
            "connectivity": "disconnected",
            "response_time_ms": response_time_ms,
            "error": str(e),
            "error_type": type(e).__name__,
        }


def get_health_info(db=None) -> Dict[str, Any]:
    """Get health information including uptime and database status."""
    uptime = time.time() - service_start_time
    components: Dict[str, Any] = {"service": {"status": "healthy", "uptime_seconds": uptime}}
    overall_status = "healthy"

    if db is not None:
        db_health = check_database_health(db)
        components["database"] = db_health
        if db_health["status"] != "healthy":
            overall_status = "unhealthy"

    return {
        "status": overall_status,
        "service": "gtdtree",
        "timestamp": time.time(),
        "uptime_seconds": uptime,
        "components": components,
    }
