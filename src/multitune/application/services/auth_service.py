"""Bearer token and OAuth state handling.

Hey future me - Multitune has no passwords. A user proves who they are with a signed
bearer token we hand out at the end of an OAuth callback (redirect to the frontend with
?token=...). Tokens are HS256 JWTs with the claims userId and username, valid 7 days.

The OAuth "state" parameter is a short-lived JWT too. That keeps the login flow stateless
(no session store) and lets a logged-in user carry their userId through Google/Spotify, so
a Spotify account without email gets linked to the RIGHT user instead of a new one.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from multitune.config import AuthSettings
from multitune.domain.entities import User
from multitune.domain.exceptions import InvalidCredentialError, MissingCredentialError

logger = logging.getLogger(__name__)

_STATE_TTL = timedelta(minutes=10)
_STATE_PURPOSE = "oauth_state"


@dataclass
class TokenClaims:
    """Identity carried by a verified bearer token."""

    user_id: int
    username: str


class AuthService:
    """Issues and verifies bearer tokens and OAuth state values."""

    def __init__(self, settings: AuthSettings) -> None:
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._ttl = timedelta(days=settings.token_ttl_days)

    def issue_token(self, user: User) -> str:
        """Issue a bearer token for a user."""
        now = datetime.now(UTC)
        payload = {
            "userId": user.id,
            "username": user.username,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        """Verify a bearer token and return its claims.

        Raises:
            InvalidCredentialError: Bad signature, expired, or missing claims
        """
        payload = self._decode(token)
        user_id = payload.get("userId")
        username = payload.get("username")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidCredentialError()
        if not isinstance(username, str):
            raise InvalidCredentialError()
        return TokenClaims(user_id=user_id, username=username)

    def authenticate_header(self, authorization: str | None) -> TokenClaims:
        """Verify an "Authorization: Bearer <token>" header value."""
        if not authorization:
            raise MissingCredentialError()
        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if not token:
            raise MissingCredentialError("Missing token")
        if scheme.lower() != "bearer":
            raise InvalidCredentialError()
        return self.verify_token(token)

    def issue_state(self, provider: str, user_id: int | None = None) -> str:
        """Issue a signed OAuth state value for one consent round-trip."""
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "purpose": _STATE_PURPOSE,
            "provider": provider,
            "nonce": secrets.token_urlsafe(16),
            "iat": now,
            "exp": now + _STATE_TTL,
        }
        if user_id is not None:
            payload["userId"] = user_id
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify_state(self, state: str | None, provider: str) -> int | None:
        """Verify an OAuth state value; returns the user ID it carries, if any.

        Raises:
            InvalidCredentialError: Missing, forged, expired or for another provider
        """
        if not state:
            raise InvalidCredentialError("Missing OAuth state")
        payload = self._decode(state)
        if payload.get("purpose") != _STATE_PURPOSE or payload.get("provider") != provider:
            raise InvalidCredentialError("Invalid OAuth state")
        user_id = payload.get("userId")
        return user_id if isinstance(user_id, int) else None

    def _decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise InvalidCredentialError("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            raise InvalidCredentialError() from e
