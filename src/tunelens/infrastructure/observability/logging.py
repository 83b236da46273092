"""Structured logging configuration with JSON formatting and correlation IDs.

Two output modes:
- compact (development): one line per record, exception chains shown root cause first
  with only tunelens frames
- JSON (production, OBSERVABILITY_LOG_JSON_FORMAT=true): one object per record for
  log shippers

Every record carries the correlation id of the HTTP request or WebSocket connection
that caused it.
"""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from types import TracebackType
from typing import Any

from pythonjsonlogger import jsonlogger

PACKAGE_NAME = "tunelens"

# Chatty libraries: request lines come from our middleware, socket frames are not interesting
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "websockets", "uvicorn.access")

COMPACT_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# Hey future me, contextvars are per asyncio task: the poll and emit tasks of a listener
# inherit the id of the WebSocket connection that spawned them.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def get_correlation_id() -> str:
    """Current correlation ID ("" outside a request or connection)."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating a UUID if none is given."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def short_id(session_id: str | None) -> str:
    """Truncate a session id for logs, full ids are bearer credentials."""
    if not session_id:
        return "<none>"
    return f"{session_id[:8]}..."


class CorrelationIdFilter(logging.Filter):
    """Stamp correlation_id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Explicit and implicit causes of exc, root cause first."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    chain.reverse()
    return chain


def _own_frames(tb: TracebackType | None) -> list[str]:
    lines: list[str] = []
    for frame in traceback.extract_tb(tb):
        if "/site-packages/" in frame.filename or PACKAGE_NAME not in frame.filename:
            continue
        location = f'"{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
        lines.append(f"    File {location}")
        if frame.line:
            lines.append(f"      {frame.line.strip()}")
    return lines


class CompactExceptionFormatter(logging.Formatter):
    """Human-readable formatter with short exception chains.

    A failed poll typically reads:

    12:00:01 │ WARNING │ tunelens...playback_sync:262 │ Playback poll failed for session abc12345...
    ╰─► ConnectError: All connection attempts failed
    ╰─► ExternalServiceError: Spotify request failed: /me/player/currently-playing
        File "spotify_client.py", line 160, in _api_request
          raise ExternalServiceError(...) from e
    """

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""
        lines: list[str] = []
        for exc in _exception_chain(exc_value):
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            lines.extend(_own_frames(exc.__traceback__))
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter adding level, source location, service and correlation id."""

    def __init__(self, *args: Any, service: str = PACKAGE_NAME, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            service=self.service,
            location=f"{record.module}.{record.funcName}:{record.lineno}",
        )

        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Listen future me, call this ONCE at startup (lifespan). It replaces the root handlers,
# so repeated calls (tests, uvicorn --reload) never stack duplicate output.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = PACKAGE_NAME,
) -> None:
    """Install the single stdout handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown values mean INFO)
        json_format: JSON lines instead of the compact format
        app_name: Reported as "service" in JSON output
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter: logging.Formatter
    if json_format:
        formatter = CustomJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", service=app_name)
    else:
        formatter = CompactExceptionFormatter(fmt=COMPACT_FORMAT, datefmt="%H:%M:%S")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging ready for %s (level=%s, json=%s)",
        app_name,
        logging.getLevelName(level),
        json_format,
    )
