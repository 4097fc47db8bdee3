"""OAuth login/link flows and the current-user endpoint.

Hey future me - the whole flow is:

    GET /auth/{flow}           → 307 to Google/Spotify consent page (state = signed JWT)
    GET /auth/{flow}/callback  → exchange code, fetch profile, find-or-create user,
                                 store provider tokens, 307 to {frontend}/?token=...

flow "youtube" and "spotify" LINK an account (tokens are stored for syncs), "google" is
login only. Pass ?token=<bearer> to /auth/{flow} while logged in and the callback links
the account to YOU instead of resolving by email.
"""

import logging
from dataclasses import replace
from enum import Enum
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from multitune.api.dependencies import (
    get_auth_service,
    get_credential_store,
    get_current_user,
    get_identity_service,
    get_oauth_clients,
    get_provider_clients,
    get_user_repository,
)
from multitune.api.schemas import UserResponse
from multitune.application.services import AuthService, IdentityService, TokenClaims
from multitune.config import Settings, get_settings
from multitune.domain.entities import Provider
from multitune.domain.exceptions import (
    ConfigurationError,
    DomainException,
    EntityNotFoundException,
    InvalidCredentialError,
)
from multitune.domain.ports import IProviderClient
from multitune.infrastructure.integrations import OAuthClient
from multitune.infrastructure.observability import log_operation
from multitune.infrastructure.persistence import CredentialRepository, UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


class OAuthFlow(str, Enum):
    """OAuth entry points."""

    YOUTUBE = "youtube"
    SPOTIFY = "spotify"
    GOOGLE = "google"

    @property
    def profile_provider(self) -> Provider:
        # Google login and YouTube linking share the Google userinfo endpoint
        return Provider.SPOTIFY if self is OAuthFlow.SPOTIFY else Provider.YOUTUBE


def _frontend_redirect(settings: Settings, **params: str) -> RedirectResponse:
    return RedirectResponse(
        f"{settings.frontend_url.rstrip('/')}/?{urlencode(params)}", status_code=307
    )


def _oauth_client(oauth_clients: dict[str, OAuthClient], flow: OAuthFlow) -> OAuthClient:
    client = oauth_clients.get(flow.value)
    if client is None:
        raise ConfigurationError(f"OAuth flow {flow.value} is not available")
    return client


# Declared before /{flow} so "me" never gets parsed as a flow name
@router.get("/me", response_model=UserResponse)
async def get_me(
    claims: TokenClaims = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    credentials: CredentialRepository = Depends(get_credential_store),
) -> UserResponse:
    """The authenticated user and which providers are linked."""
    user = await users.get_by_id(claims.user_id)
    if user is None:
        raise EntityNotFoundException("User", claims.user_id)
    linked = {p.value: await credentials.is_linked(user.id, p.value) for p in Provider}
    return UserResponse.from_entity(user, linked)


@router.get("/{flow}")
async def start_oauth(
    flow: OAuthFlow,
    token: str | None = Query(default=None, description="Bearer token of a logged-in user"),
    auth_service: AuthService = Depends(get_auth_service),
    oauth_clients: dict[str, OAuthClient] = Depends(get_oauth_clients),
) -> RedirectResponse:
    """Redirect the browser to the provider's consent page."""
    client = _oauth_client(oauth_clients, flow)
    user_id = auth_service.verify_token(token).user_id if token else None
    state = auth_service.issue_state(flow.value, user_id)
    return RedirectResponse(client.build_authorization_url(state), status_code=307)


@router.get("/{flow}/callback")
async def oauth_callback(
    flow: OAuthFlow,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    settings: Settings = Depends(get_settings),
    auth_service: AuthService = Depends(get_auth_service),
    identity_service: IdentityService = Depends(get_identity_service),
    oauth_clients: dict[str, OAuthClient] = Depends(get_oauth_clients),
    provider_clients: dict[Provider, IProviderClient] = Depends(get_provider_clients),
) -> RedirectResponse:
    """Finish the consent round-trip and hand a bearer token to the frontend."""
    # User clicked "cancel" on the consent page
    if error or not code:
        logger.info("%s consent not granted: %s", flow.value, error or "no code")
        return _frontend_redirect(settings, error=error or "access_denied")

    client = _oauth_client(oauth_clients, flow)
    profile_client = provider_clients.get(flow.profile_provider)
    if profile_client is None:
        raise ConfigurationError(f"No profile client for {flow.value}")

    try:
        async with log_operation(logger, "oauth_callback", flow=flow.value):
            user_id = auth_service.verify_state(state, flow.value)
            tokens = await client.exchange_code(code)
            profile = await profile_client.get_profile(tokens.access_token)
            profile = replace(profile, provider=flow.value)
            user = await identity_service.link_account(profile, tokens, user_id)
    except InvalidCredentialError:
        return _frontend_redirect(settings, error="invalid_state")
    except DomainException as e:
        # Browser is mid-redirect, a JSON error page would be a dead end
        logger.error("%s callback failed: %s", flow.value, e.message)
        return _frontend_redirect(settings, error="link_failed")

    params = {"token": auth_service.issue_token(user)}
    if flow is not OAuthFlow.GOOGLE:
        params["linked"] = flow.value
    return _frontend_redirect(settings, **params)
