"""Logging setup: correlation IDs, JSON output for production, compact output for dev."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

PACKAGE_NAME = "multitune"

# Hey future me, the correlation ID ties every log line of one HTTP request together (the
# sync of 30 playlists logs a LOT). contextvars is asyncio-safe: each task sees its own
# value, so concurrent requests never mix IDs. Default "" covers startup logs.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# HTTP libraries and the event loop are chatty at INFO
_NOISY_LOGGERS = (
    "urllib3",
    "httpx",
    "httpcore",
    "asyncio",
    "aiosqlite",
    "sqlalchemy.engine",
    "uvicorn.access",
)


def get_correlation_id() -> str:
    """Get the current correlation ID, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: ID to use. A new UUID4 is generated when None.

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation ID to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def _own_frames(tb: Any) -> list[traceback.FrameSummary]:
    # site-packages and stdlib frames are noise when debugging a failed sync
    frames = []
    for frame in traceback.extract_tb(tb):
        if "/site-packages/" in frame.filename or "/usr/lib/python" in frame.filename:
            continue
        if PACKAGE_NAME in frame.filename:
            frames.append(frame)
    return frames


class CompactExceptionFormatter(logging.Formatter):
    """Human-readable formatter that prints exception chains root cause first.

    Hey future me - a failed refresh produces a chain like
    httpx.ConnectError → RefreshError → AuthExpiredError. Python's default output buries
    that in "The above exception was the direct cause..." blocks. This prints one
    ╰─► line per exception plus only the frames from our own package:

        ERROR │ multitune.application.services.playlist_sync_service:212 │ Sync failed
        ╰─► ConnectError: All connection attempts failed
        ╰─► RefreshError: youtube token refresh failed: All connection attempts failed
            File "playlist_sync_service.py", line 198, in _refresh
              result = await refresher.refresh_token(credential.refresh_token)
    """

    def formatException(self, ei: Any) -> str:
        _, exc_value, _ = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__

        lines: list[str] = []
        for exc in reversed(chain):
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            for frame in _own_frames(exc.__traceback__):
                lines.append(
                    f'    File "{Path(frame.filename).name}", '
                    f"line {frame.lineno}, in {frame.name}"
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter with location and correlation fields."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)


# Listen future me, call this ONCE at startup (the app lifespan does). It replaces every
# root handler, so calling it again in tests is safe and doesn't duplicate output.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = PACKAGE_NAME,
) -> None:
    """Configure root logging.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of the compact human format
        app_name: Application name included in the startup log line
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())

    formatter: logging.Formatter
    if json_format:
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "app_name": app_name,
            "log_level": log_level,
            "json_format": json_format,
        },
    )
