"""Application services."""

from multitune.application.services.auth_service import AuthService, TokenClaims
from multitune.application.services.identity_service import IdentityService
from multitune.application.services.playlist_sync_service import PlaylistSyncService

__all__ = [
    "AuthService",
    "IdentityService",
    "PlaylistSyncService",
    "TokenClaims",
]
