"""Domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Provider(str, Enum):
    """Third-party services whose playlists we mirror.

    The value doubles as the service key in the credential store.
    """

    YOUTUBE = "youtube"
    SPOTIFY = "spotify"


@dataclass
class User:
    """Multitune user account."""

    id: int
    username: str
    email: str | None = None
    created_at: datetime | None = None


@dataclass
class ServiceCredential:
    """OAuth tokens for one (user, service) pair."""

    user_id: int
    service: str
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None


@dataclass
class PlaylistItem:
    """A mirrored video (YouTube) or track (Spotify) inside a playlist."""

    id: int
    playlist_id: int
    provider_item_id: str
    title: str | None = None
    description: str | None = None
    published_at: datetime | None = None
    channel_title: str | None = None
    channel_id: str | None = None
    thumbnail_url: str | None = None
    position: int | None = None
    added_at: datetime | None = None


@dataclass
class Playlist:
    """A mirrored playlist.

    Hey future me - id is OUR surrogate key and never changes once the row exists, even if
    the remote title or description changes. items is None when the caller didn't ask for
    them (list views), and [] when the playlist really is empty.
    """

    id: int
    user_id: int
    provider: Provider
    provider_playlist_id: str
    title: str | None = None
    description: str | None = None
    thumbnail_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[PlaylistItem] | None = None


@dataclass
class SyncResult:
    """Outcome of one sync run: the full local snapshot plus counters."""

    provider: Provider
    playlists: list[Playlist] = field(default_factory=list)
    playlists_added: int = 0
    items_added: int = 0
    token_refreshed: bool = False


__all__ = [
    "Playlist",
    "PlaylistItem",
    "Provider",
    "ServiceCredential",
    "SyncResult",
    "User",
]
