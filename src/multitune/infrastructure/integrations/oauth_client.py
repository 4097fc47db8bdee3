"""OAuth 2.0 authorization-code and refresh-token client for Google and Spotify.

Hey future me - this is NOT a general OAuth library. It does exactly the three HTTP steps
the link flow and the sync engine need:

1. build_authorization_url() -> where to send the browser
2. exchange_code()           -> tokens for the code the provider hands back
3. refresh_token()           -> new access token when the old one got a 401

One OAuthClient per flow: "youtube" (Google with YouTube read scope), "google" (plain
Google login) and "spotify". Use the *_oauth_client() factories below so scopes and
redirect URIs come from settings.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from multitune.config import GoogleSettings, SpotifySettings
from multitune.domain.dtos import TokenResult
from multitune.domain.exceptions import ConfigurationError, ProviderError, RefreshError
from multitune.domain.ports import ITokenRefresher

from .provider_client import decode_payload
from .schemas import OAuthTokenResponse

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # nosec B105 - public endpoint URL
SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Static description of one OAuth flow."""

    name: str
    authorize_url: str
    token_url: str
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: tuple[str, ...]
    extra_params: dict[str, str] = field(default_factory=dict)

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)


class OAuthClient(ITokenRefresher):
    """HTTP client for one provider's authorization and token endpoints."""

    def __init__(self, config: OAuthProviderConfig, timeout: float = 30.0) -> None:
        self.config = config
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OAuthClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _require_configured(self) -> None:
        # Fail fast with a readable message instead of the provider's cryptic
        # "missing required parameter client_id" page.
        if not self.config.is_configured:
            raise ConfigurationError(
                f"OAuth client for {self.config.name} is not configured. "
                "Set the client id, client secret and redirect URI in your environment."
            )

    def build_authorization_url(self, state: str) -> str:
        """Build the consent page URL; state comes back unchanged on the callback."""
        self._require_configured()
        params = {
            "client_id": self.config.client_id,
            "response_type": "code",
            "redirect_uri": self.config.redirect_uri,
            "scope": " ".join(self.config.scopes),
            "state": state,
            **self.config.extra_params,
        }
        return f"{self.config.authorize_url}?{urlencode(params)}"

    # Yo, the code is single-use and short-lived, and redirect_uri MUST match the one used
    # in build_authorization_url() byte for byte or the provider rejects the exchange.
    async def exchange_code(self, code: str) -> TokenResult:
        """Exchange an authorization code for tokens."""
        self._require_configured()
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_uri,
        }
        try:
            status_code, payload = await self._post_token(data)
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.config.name} code exchange failed: {e}", payload=str(e)
            ) from e

        result = self._token_result(status_code, payload)
        if result is None:
            raise ProviderError(
                f"{self.config.name} code exchange failed",
                status_code=status_code,
                payload=payload,
            )
        return result

    # Hey future me - ONE attempt, no retry. The sync engine decides what a failure means
    # (it turns every RefreshError into AuthExpiredError → "please re-link"). We keep the
    # token endpoint's body verbatim in RefreshError.payload, so {"error": "invalid_grant"}
    # from a revoked grant shows up as-is in the logs.
    async def refresh_token(self, refresh_token: str) -> TokenResult:
        """Exchange a refresh token for a new access token."""
        data = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        try:
            status_code, payload = await self._post_token(data)
        except httpx.HTTPError as e:
            raise RefreshError(
                f"{self.config.name} token refresh failed: {e}", payload=str(e)
            ) from e

        result = self._token_result(status_code, payload)
        if result is None:
            logger.warning(
                "%s token refresh rejected (%s): %s",
                self.config.name,
                status_code,
                payload,
            )
            raise RefreshError(
                f"{self.config.name} token refresh failed",
                status_code=status_code,
                payload=payload,
            )
        return result

    async def _post_token(self, data: dict[str, str]) -> tuple[int, Any]:
        client = await self._get_client()
        # It HAS to be form-urlencoded, not JSON. httpx does that for data=.
        response = await client.post(
            self.config.token_url,
            data={
                **data,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        return response.status_code, decode_payload(response)

    @staticmethod
    def _token_result(status_code: int, payload: Any) -> TokenResult | None:
        if not 200 <= status_code < 300 or not isinstance(payload, dict):
            return None
        return OAuthTokenResponse.model_validate(payload).to_result()


def youtube_oauth_client(settings: GoogleSettings) -> OAuthClient:
    """Google OAuth flow that links a YouTube account (offline access)."""
    return OAuthClient(
        OAuthProviderConfig(
            name="youtube",
            authorize_url=GOOGLE_AUTHORIZE_URL,
            token_url=GOOGLE_TOKEN_URL,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.youtube_redirect_uri,
            scopes=(
                "openid",
                "email",
                "profile",
                "https://www.googleapis.com/auth/youtube.readonly",
            ),
            # Google only sends a refresh_token with access_type=offline, and only on
            # the FIRST consent unless we force the consent screen again.
            extra_params={"access_type": "offline", "prompt": "consent"},
        )
    )


def google_oauth_client(settings: GoogleSettings) -> OAuthClient:
    """Plain Google sign-in (identity only, nothing gets mirrored)."""
    return OAuthClient(
        OAuthProviderConfig(
            name="google",
            authorize_url=GOOGLE_AUTHORIZE_URL,
            token_url=GOOGLE_TOKEN_URL,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.login_redirect_uri,
            scopes=("openid", "email", "profile"),
        )
    )


def spotify_oauth_client(settings: SpotifySettings) -> OAuthClient:
    """Spotify OAuth flow with read access to the user's playlists."""
    return OAuthClient(
        OAuthProviderConfig(
            name="spotify",
            authorize_url=SPOTIFY_AUTHORIZE_URL,
            token_url=SPOTIFY_TOKEN_URL,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            scopes=(
                "playlist-read-private",
                "playlist-read-collaborative",
                "user-read-email",
            ),
        )
    )
