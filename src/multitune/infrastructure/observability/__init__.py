"""Observability infrastructure for structured logging."""

from multitune.infrastructure.observability.logger_template import log_operation
from multitune.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from multitune.infrastructure.observability.middleware import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "log_operation",
    "set_correlation_id",
]
