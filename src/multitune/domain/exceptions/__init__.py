"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so handlers can read it without
    # parsing str(exception). Don't raise this directly - always use a specific subclass so
    # callers (and the HTTP exception handlers) can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Application misconfiguration (missing OAuth client credentials etc).

    HTTP Status: 503
    """

    pass


# =============================================================================
# Identity check
# =============================================================================


class MissingCredentialError(DomainException):
    """No bearer credential was presented.

    HTTP Status: 401
    """

    def __init__(self, message: str = "Missing Authorization header") -> None:
        super().__init__(message)


class InvalidCredentialError(DomainException):
    """Bearer credential is malformed, expired, or has a bad signature.

    HTTP Status: 401
    """

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


# =============================================================================
# Sync taxonomy
# =============================================================================

# Human-facing service names for error messages
_SERVICE_NAMES = {"youtube": "YouTube", "spotify": "Spotify", "google": "Google"}


def service_display_name(service: str) -> str:
    return _SERVICE_NAMES.get(service, service)


class NotLinkedError(DomainException):
    """No credential on file for (user, service) - user has to link the account.

    HTTP Status: 400
    """

    def __init__(self, user_id: int, service: str) -> None:
        super().__init__(f"{service_display_name(service)} not linked")
        self.user_id = user_id
        self.service = service


class AuthExpiredError(DomainException):
    """Access token expired and could not be refreshed - user has to re-link.

    HTTP Status: 401
    """

    def __init__(self, service: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"{service_display_name(service)} authentication expired. "
            "Please re-link your account."
        )
        self.service = service


class ProviderError(DomainException):
    """Remote API returned a non-auth failure.

    Hey future me - payload is the RAW upstream body (decoded JSON if possible, else text).
    The HTTP layer passes it through as "details" so you can see exactly what YouTube or
    Spotify complained about (quotaExceeded, playlistNotFound, ...). Never retried.

    HTTP Status: 502
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ProviderUnauthorizedError(ProviderError):
    """Remote API rejected the access token (HTTP 401).

    This is the only provider failure the sync engine recovers from, by refreshing the
    token once and retrying the call that failed.
    """

    pass


class RefreshError(DomainException):
    """Refresh-token exchange failed.

    HTTP Status: 401
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def error_code(self) -> str | None:
        """OAuth error code from the token endpoint (e.g. "invalid_grant")."""
        if isinstance(self.payload, dict):
            code = self.payload.get("error")
            return code if isinstance(code, str) else None
        return None


class StoreError(DomainException):
    """Persistence failure. Surfaced, not retried.

    HTTP Status: 500
    """

    pass


__all__ = [
    "AuthExpiredError",
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "InvalidCredentialError",
    "MissingCredentialError",
    "NotLinkedError",
    "ProviderError",
    "ProviderUnauthorizedError",
    "RefreshError",
    "StoreError",
    "service_display_name",
]
