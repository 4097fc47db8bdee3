"""Exception handlers that turn domain exceptions into JSON error responses.

Every error body has the same shape: {"error": "<message>"} plus "details" where there
is something useful to add (the raw provider payload, validation errors). The frontend
shows "error" as-is, so keep messages human-readable.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from multitune.domain.exceptions import (
    AuthExpiredError,
    ConfigurationError,
    EntityNotFoundException,
    InvalidCredentialError,
    MissingCredentialError,
    NotLinkedError,
    ProviderError,
    RefreshError,
    StoreError,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, details: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"error": message}
    if details is not None:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content)


# Hey future me, these MUST be registered during app setup (create_app does it). Anything
# not listed here (a real bug) falls through to Starlette's 500 and gets logged by the
# request middleware with a full traceback.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain, validation and HTTP exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(NotLinkedError)
    async def not_linked_handler(request: Request, exc: NotLinkedError) -> JSONResponse:
        """A provider has to be linked before it can be synced (400)."""
        logger.info("%s at %s", exc.message, request.url.path)
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(AuthExpiredError)
    async def auth_expired_handler(
        request: Request, exc: AuthExpiredError
    ) -> JSONResponse:
        """Provider token is dead, the user must re-link (401)."""
        logger.warning(
            "%s auth expired at %s",
            exc.service,
            request.url.path,
            extra={"path": request.url.path, "service": exc.service},
        )
        return _error(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(RefreshError)
    async def refresh_error_handler(request: Request, exc: RefreshError) -> JSONResponse:
        """Token refresh failed outside a sync run (401)."""
        logger.warning("Token refresh failed at %s: %s", request.url.path, exc.payload)
        return _error(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(MissingCredentialError)
    async def missing_credential_handler(
        request: Request, exc: MissingCredentialError
    ) -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(InvalidCredentialError)
    async def invalid_credential_handler(
        request: Request, exc: InvalidCredentialError
    ) -> JSONResponse:
        logger.info("Rejected credential at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={
                "path": request.url.path,
                "entity_type": exc.entity_type,
                "entity_id": str(exc.entity_id),
            },
        )
        return _error(status.HTTP_404_NOT_FOUND, f"{exc.entity_type} not found")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Bad path/query parameters (e.g. unknown provider name)."""
        logger.warning("Request validation failed at %s", request.url.path)
        # jsonable_encoder also decodes raw bytes inputs pydantic puts in errors()
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request", exc.errors()
        )

    # Listen up - details carries the upstream body VERBATIM (quotaExceeded,
    # playlistNotFound, Spotify's {"error": {"status": 429, ...}}). That's the only way to
    # tell from the frontend why YouTube said no.
    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
        logger.error(
            "Provider error at %s: %s (%s)",
            request.url.path,
            exc.message,
            exc.status_code,
            extra={"path": request.url.path, "upstream_status": exc.status_code},
        )
        return _error(status.HTTP_502_BAD_GATEWAY, exc.message, exc.payload)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store error at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error", exc.message)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("HTTP %s at %s: %s", exc.status_code, request.url.path, exc.detail)
        return _error(exc.status_code, str(exc.detail))
