"""Dependency injection for API endpoints."""

import logging
from typing import cast

from fastapi import Depends, Header, HTTPException, Request

from multitune.application.services import (
    AuthService,
    IdentityService,
    PlaylistSyncService,
    TokenClaims,
)
from multitune.config import Settings, get_settings
from multitune.domain.entities import Provider
from multitune.domain.ports import IProviderClient
from multitune.infrastructure.integrations import OAuthClient
from multitune.infrastructure.persistence import (
    CredentialRepository,
    Database,
    PlaylistMirrorRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


# Hey future me, the Database, the provider clients and the OAuth clients are created ONCE
# in the app lifespan (see main.py) and parked on app.state. They hold connection pools,
# so building them per request would leak sockets. If they're missing, startup failed.
def get_db(request: Request) -> Database:
    """Get the Database from app state."""
    if not hasattr(request.app.state, "db"):
        raise HTTPException(status_code=503, detail="Database not initialized")
    return cast(Database, request.app.state.db)


def get_provider_clients(request: Request) -> dict[Provider, IProviderClient]:
    """Get the YouTube/Spotify API clients from app state."""
    if not hasattr(request.app.state, "provider_clients"):
        raise HTTPException(status_code=503, detail="Provider clients not initialized")
    return cast(dict[Provider, IProviderClient], request.app.state.provider_clients)


def get_oauth_clients(request: Request) -> dict[str, OAuthClient]:
    """Get the OAuth clients ("youtube", "spotify", "google") from app state."""
    if not hasattr(request.app.state, "oauth_clients"):
        raise HTTPException(status_code=503, detail="OAuth clients not initialized")
    return cast(dict[str, OAuthClient], request.app.state.oauth_clients)


def get_auth_service(settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(settings.auth)


def get_user_repository(db: Database = Depends(get_db)) -> UserRepository:
    return UserRepository(db.session_scope)


def get_credential_store(db: Database = Depends(get_db)) -> CredentialRepository:
    return CredentialRepository(db.session_scope)


def get_playlist_mirror(db: Database = Depends(get_db)) -> PlaylistMirrorRepository:
    return PlaylistMirrorRepository(db.session_scope)


def get_identity_service(
    users: UserRepository = Depends(get_user_repository),
    credentials: CredentialRepository = Depends(get_credential_store),
) -> IdentityService:
    return IdentityService(users, credentials)


# Listen up - YouTube tokens are refreshed through the "youtube" Google client, NOT the
# "google" login client. Same token endpoint, but the youtube client is the one whose
# consent included the YouTube scope.
def get_sync_service(
    credentials: CredentialRepository = Depends(get_credential_store),
    mirror: PlaylistMirrorRepository = Depends(get_playlist_mirror),
    clients: dict[Provider, IProviderClient] = Depends(get_provider_clients),
    oauth_clients: dict[str, OAuthClient] = Depends(get_oauth_clients),
) -> PlaylistSyncService:
    refreshers = {
        provider: oauth_clients[provider.value]
        for provider in Provider
        if provider.value in oauth_clients
    }
    return PlaylistSyncService(credentials, mirror, clients, refreshers)


def get_current_user(
    authorization: str | None = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """Verify the Authorization: Bearer header.

    Raises:
        MissingCredentialError: No header or no token (401)
        InvalidCredentialError: Bad signature or expired (401)
    """
    return auth_service.authenticate_header(authorization)
