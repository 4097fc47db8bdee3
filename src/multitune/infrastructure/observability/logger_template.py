"""Operation logging helpers.

Hey future me - wrap anything worth timing (a sync run, an OAuth callback) in
log_operation() so start, completion and failure lines look the same everywhere:

    async with log_operation(logger, "playlist_sync", user_id=1, provider="youtube"):
        ...
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[dict[str, Any]]:
    """Log {operation}.started / .completed / .failed with duration_ms.

    Yields a dict; whatever the caller puts in it (counters etc.) is added to the
    completion line. Exceptions are logged and re-raised unchanged.
    """
    start = time.perf_counter()
    outcome: dict[str, Any] = {}
    logger.info(f"{operation}.started", extra=context)

    try:
        yield outcome
    except Exception as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        # Expected domain failures (not linked, expired) are warnings, not crashes
        logger.warning(
            f"{operation}.failed: {e}",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
            },
        )
        raise

    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info(
        f"{operation}.completed",
        extra={**context, **outcome, "duration_ms": duration_ms},
    )
