"""External integration client implementations."""

from multitune.infrastructure.integrations.oauth_client import (
    OAuthClient,
    OAuthProviderConfig,
    google_oauth_client,
    spotify_oauth_client,
    youtube_oauth_client,
)
from multitune.infrastructure.integrations.provider_client import (
    MAX_IDS_PER_REQUEST,
    BaseProviderClient,
)
from multitune.infrastructure.integrations.spotify_client import SpotifyClient
from multitune.infrastructure.integrations.youtube_client import YouTubeClient

__all__ = [
    "MAX_IDS_PER_REQUEST",
    "BaseProviderClient",
    "OAuthClient",
    "OAuthProviderConfig",
    "SpotifyClient",
    "YouTubeClient",
    "google_oauth_client",
    "spotify_oauth_client",
    "youtube_oauth_client",
]
