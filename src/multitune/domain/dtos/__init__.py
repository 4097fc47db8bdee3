"""
Data Transfer Objects returned by the provider clients.

Hey future me - these DTOs are the LINGUA FRANCA between the YouTube/Spotify clients and
the sync engine. The clients validate the raw JSON (see infrastructure/integrations/
schemas.py) and hand out only these. Missing or malformed remote fields are already None
here, so the sync engine never touches untyped payloads.

Flow: Provider API response → pydantic schema → DTO → PlaylistSyncService → repository
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ItemDetails:
    """Full descriptive metadata for one video or track."""

    title: str | None = None
    description: str | None = None
    published_at: datetime | None = None
    channel_title: str | None = None
    channel_id: str | None = None
    thumbnail_url: str | None = None


@dataclass
class RemotePlaylist:
    """A playlist as listed by the provider."""

    provider_playlist_id: str
    title: str | None = None
    description: str | None = None
    thumbnail_url: str | None = None


@dataclass
class RemoteItem:
    """One entry of a provider playlist listing.

    Hey future me - provider_item_id is the VIDEO/TRACK id (not YouTube's playlistItem id),
    because that's the natural key we dedupe on. It's None for deleted/private videos and
    local Spotify files - the sync engine skips those. details is None when the listing ran
    in reference-only mode; the engine batch-resolves those afterwards.
    """

    provider_item_id: str | None
    position: int | None = None
    details: ItemDetails | None = None


@dataclass
class ProviderProfile:
    """Identity of the account that just completed an OAuth consent."""

    provider: str  # "youtube", "spotify", "google"
    account_id: str
    display_name: str | None = None
    email: str | None = None


@dataclass
class TokenResult:
    """Token endpoint response.

    refresh_token is None on most refreshes - keep the stored one in that case!
    """

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None


__all__ = [
    "ItemDetails",
    "ProviderProfile",
    "RemoteItem",
    "RemotePlaylist",
    "TokenResult",
]
