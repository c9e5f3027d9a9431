"""Request logging middleware with request-id correlation."""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.commons.telemetry import LogContext, get_logger, set_correlation_id

REQUEST_ID_HEADER = "X-Request-ID"

# Orchestrator probes hit these every few seconds
QUIET_PATH_PREFIXES = ("/health",)

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome.

    The id is taken from `X-Request-ID` when the caller sends one, becomes
    the log correlation id and is echoed back on the response. Service logs
    emitted while the request runs carry `request_id` through the log
    context, so webhook deliveries can be traced to the state changes they
    caused.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        set_correlation_id(request_id)

        path = request.url.path
        quiet = path.startswith(QUIET_PATH_PREFIXES)
        started = time.perf_counter()

        with LogContext(request_id=request_id):
            logger.log(
                logging.DEBUG if quiet else logging.INFO,
                "Request started",
                extra={
                    "method": request.method,
                    "path": path,
                    "client_ip": request.client.host if request.client else None,
                },
            )
            response = await call_next(request)

            status = response.status_code
            if status >= 500:
                level = logging.WARNING
            elif quiet:
                level = logging.DEBUG
            else:
                level = logging.INFO
            logger.log(
                level,
                "Request completed",
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": status,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
