"""Request logging middleware with correlation IDs."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tunelens.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


# Hey future me, BaseHTTPMiddleware only sees HTTP requests. The /ws/playback socket
# bypasses it and sets its own correlation id per connection. Only the PATH is logged:
# the query string may carry ?session=<id>, which is a bearer credential.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line when a request arrives and one when it completes."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        set_correlation_id(request.headers.get(CORRELATION_HEADER))
        route = f"{request.method} {request.url.path}"
        context = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
            "has_session": "session" in request.query_params
            or "authorization" in request.headers,
        }

        logger.info(f"→ {route}", extra=context)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                f"Request failed: {route}",
                extra={
                    **context,
                    "duration_ms": _elapsed_ms(started),
                    "error_type": type(e).__name__,
                },
            )
            raise

        duration_ms = _elapsed_ms(started)
        marker = "✓" if response.status_code < 400 else "✗"
        logger.info(
            f"{marker} {route} → {response.status_code} ({duration_ms}ms)",
            extra={**context, "status_code": response.status_code, "duration_ms": duration_ms},
        )

        response.headers[CORRELATION_HEADER] = get_correlation_id()
        return response
