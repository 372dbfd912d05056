"""
Observability Middleware.

Adds correlation IDs and structured logging context to requests.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_logger = logging.getLogger("calctree.requests")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the application loggers.

    Safe to call more than once; handlers are only attached the first time.
    """
    root = logging.getLogger("calctree")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Correlation ID, timing and one structured log line per request.

    The log records the matched route template (``/v1/calculations/{calculation_id}``
    rather than the concrete path) and, for failed requests, the error code the
    exception handlers put on ``request.state``.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000  # ms

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{process_time:.2f}"

        route = request.scope.get("route")
        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "route": getattr(route, "path", request.url.path),
            "status_code": response.status_code,
            "error_code": getattr(request.state, "error_code", None),
            "duration_ms": round(process_time, 2),
        }
        message = "%s %s -> %s"
        args = (log_data["method"], log_data["route"], response.status_code)

        if response.status_code >= 500:
            request_logger.error(message, *args, extra=log_data)
        elif response.status_code >= 400:
            request_logger.warning(message + " [%s]", *args, log_data["error_code"], extra=log_data)
        else:
            request_logger.info(message, *args, extra=log_data)

        return response
