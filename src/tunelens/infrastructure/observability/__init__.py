"""Observability: structured logging and request correlation."""

from .logging import (
    CorrelationIdFilter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
    short_id,
)
from .middleware import RequestLoggingMiddleware

__all__ = [
    "CorrelationIdFilter",
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
    "short_id",
]
