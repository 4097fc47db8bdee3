"""API response schemas."""

from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel, Field

from multitune.domain.entities import Playlist, PlaylistItem, Provider, SyncResult, User


class PlaylistItemResponse(BaseModel):
    """One mirrored video or track."""

    id: int
    playlist_id: int
    provider_item_id: str = Field(..., description="YouTube video ID or Spotify track ID")
    title: str | None = None
    description: str | None = None
    published_at: datetime | None = None
    channel_title: str | None = Field(
        default=None, description="Channel (YouTube) or first artist (Spotify)"
    )
    channel_id: str | None = None
    thumbnail_url: str | None = None
    position: int | None = None
    added_at: datetime | None = None

    @classmethod
    def from_entity(cls, item: PlaylistItem) -> "PlaylistItemResponse":
        return cls(**asdict(item))


class PlaylistResponse(BaseModel):
    """A mirrored playlist with its items."""

    id: int
    provider: Provider
    provider_playlist_id: str
    title: str | None = None
    description: str | None = None
    thumbnail_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[PlaylistItemResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, playlist: Playlist) -> "PlaylistResponse":
        return cls(
            id=playlist.id,
            provider=playlist.provider,
            provider_playlist_id=playlist.provider_playlist_id,
            title=playlist.title,
            description=playlist.description,
            thumbnail_url=playlist.thumbnail_url,
            created_at=playlist.created_at,
            updated_at=playlist.updated_at,
            items=[PlaylistItemResponse.from_entity(i) for i in playlist.items or []],
        )


class SyncSummary(BaseModel):
    """Counters of the sync run that produced the response."""

    playlists_added: int
    items_added: int
    token_refreshed: bool


class PlaylistsResponse(BaseModel):
    """Response of GET /api/{provider}/playlists."""

    playlists: list[PlaylistResponse]
    sync: SyncSummary

    @classmethod
    def from_result(cls, result: SyncResult) -> "PlaylistsResponse":
        return cls(
            playlists=[PlaylistResponse.from_entity(p) for p in result.playlists],
            sync=SyncSummary(
                playlists_added=result.playlists_added,
                items_added=result.items_added,
                token_refreshed=result.token_refreshed,
            ),
        )


class PlaylistItemsResponse(BaseModel):
    """Response of GET /api/db/{provider}/playlist/{id}/items."""

    items: list[PlaylistItemResponse]


class LinkedResponse(BaseModel):
    linked: bool


class UserResponse(BaseModel):
    """The authenticated user."""

    id: int
    username: str
    email: str | None = None
    linked: dict[str, bool] = Field(
        default_factory=dict, description="Link status per provider"
    )

    @classmethod
    def from_entity(cls, user: User, linked: dict[str, bool]) -> "UserResponse":
        return cls(id=user.id, username=user.username, email=user.email, linked=linked)


class HealthResponse(BaseModel):
    status: str
    database: str
