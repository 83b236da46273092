"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions into
JSON responses shaped the way the dashboard frontend expects: {"error": "..."} plus
"needsReauth": true whenever only a new login can help.

Hey future me - 5xx causes are logged HERE and never sent to the client. The client
just sees "Request failed" / "Failed to fetch lyrics".
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tunelens.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DomainException,
    ExternalServiceError,
    LyricsExtractionError,
    LyricsNotFoundError,
    RateLimitExceededError,
    SessionExpiredError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None, **extra: Any
) -> JSONResponse:
    """Build the {"error": ...} body used by every API error."""
    return JSONResponse(
        status_code=status_code,
        content={"error": message, **extra},
        headers=headers,
    )


# Hey future me, Starlette picks the handler by walking the exception's MRO, so the most
# specific registration wins (SessionExpiredError before AuthenticationError, RateLimitExceeded
# before ExternalServiceError). Register during app setup, BEFORE requests arrive.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers mapping domain exceptions to HTTP responses.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Missing/malformed input -> 400."""
        logger.info("Validation error at %s: %s", request.url.path, exc.message)
        return error_response(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Pydantic query/body validation -> 422."""
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        logger.warning("Request validation error at %s: %s", request.url.path, errors)
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request", detail=errors
        )

    @app.exception_handler(SessionExpiredError)
    async def session_expired_handler(
        request: Request, exc: SessionExpiredError
    ) -> JSONResponse:
        """Upstream rejected the session -> 401, client must log in again."""
        logger.info("Session expired at %s", request.url.path)
        return error_response(status.HTTP_401_UNAUTHORIZED, exc.message, needsReauth=True)

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """No session / unknown session -> 401."""
        return error_response(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(LyricsNotFoundError)
    async def lyrics_not_found_handler(
        request: Request, exc: LyricsNotFoundError
    ) -> JSONResponse:
        """No candidates / no match -> 404."""
        logger.info("Lyrics not found (%s) at %s", exc.reason, request.url.path)
        return error_response(status.HTTP_404_NOT_FOUND, exc.message)

    @app.exception_handler(LyricsExtractionError)
    async def lyrics_extraction_handler(
        request: Request, exc: LyricsExtractionError
    ) -> JSONResponse:
        """Page fetch/parse failure -> 500 with a generic message."""
        cause = exc.__cause__
        logger.error(
            "Error fetching lyrics at %s: %s",
            request.url.path,
            f"{type(cause).__name__}: {cause}" if cause else exc.message,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch lyrics")

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_handler(
        request: Request, exc: RateLimitExceededError
    ) -> JSONResponse:
        """Upstream 429 -> 429, forwarding Retry-After when known."""
        logger.warning("Rate limited at %s: %s", request.url.path, exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return error_response(status.HTTP_429_TOO_MANY_REQUESTS, "Rate limited", headers=headers)

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Any other upstream failure -> 500 "Request failed"."""
        logger.error(
            "API error at %s: %s",
            request.url.path,
            exc.message,
            extra={"upstream_status": exc.status_code},
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Request failed")

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Server misconfiguration -> 503."""
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        """Anything else from the domain -> 500."""
        logger.error(
            "Unhandled domain error at %s: %s: %s",
            request.url.path,
            type(exc).__name__,
            exc.message,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Request failed")
