"""Pydantic models for the raw YouTube and Spotify API payloads.

Hey future me - these are deliberately FORGIVING. Provider payloads are full of holes
(deleted videos without snippets, local Spotify files without IDs, playlists without
images) and we never want one weird entry to kill a whole sync. Every leaf field goes
through a lenient validator that turns absent OR wrongly-typed values into None, and
lists drop entries that aren't JSON objects. The clients call the to_*() converters and
hand out domain DTOs only.
"""

from datetime import UTC, date, datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from multitune.domain.dtos import (
    ItemDetails,
    ProviderProfile,
    RemoteItem,
    RemotePlaylist,
    TokenResult,
)


def _text_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int_or_none(value: Any) -> int | None:
    # bool is an int subclass, and True is not a position
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _flag_or_none(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, dict) else None


def _objects_only(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def _objects_or_null(value: Any) -> list[Any]:
    # Spotify's /tracks?ids= answers unknown IDs with null, keep the slots
    if not isinstance(value, list):
        return []
    return [entry if isinstance(entry, dict) else None for entry in value]


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp, returning None for anything unparsable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def parse_release_date(value: Any, precision: Any = None) -> datetime | None:
    """Parse a Spotify release date with year, month or day precision."""
    if not isinstance(value, str) or not value:
        return None
    parts = value.split("-")
    try:
        if precision == "year" or len(parts) == 1:
            parsed = date(int(parts[0]), 1, 1)
        elif precision == "month" or len(parts) == 2:
            parsed = date(int(parts[0]), int(parts[1]), 1)
        else:
            parsed = date.fromisoformat(value)
    except ValueError:
        return None
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=UTC)


Text = Annotated[str | None, BeforeValidator(_text_or_none)]
Number = Annotated[int | None, BeforeValidator(_int_or_none)]

EntryT = TypeVar("EntryT", bound=BaseModel)


# =============================================================================
# YouTube Data API v3 (camelCase keys)
# =============================================================================


class _YouTubeModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )


class YouTubeThumbnail(_YouTubeModel):
    url: Text = None


class YouTubeThumbnails(_YouTubeModel):
    default: Annotated[YouTubeThumbnail | None, BeforeValidator(_mapping_or_none)] = (
        None
    )

    @property
    def default_url(self) -> str | None:
        return self.default.url if self.default else None


Thumbnails = Annotated[YouTubeThumbnails | None, BeforeValidator(_mapping_or_none)]


def _default_thumbnail(thumbnails: YouTubeThumbnails | None) -> str | None:
    return thumbnails.default_url if thumbnails else None


class YouTubeResourceId(_YouTubeModel):
    video_id: Text = None


class YouTubePlaylistSnippet(_YouTubeModel):
    title: Text = None
    description: Text = None
    thumbnails: Thumbnails = None


class YouTubePlaylist(_YouTubeModel):
    id: Text = None
    snippet: Annotated[
        YouTubePlaylistSnippet | None, BeforeValidator(_mapping_or_none)
    ] = None

    def to_remote(self) -> RemotePlaylist | None:
        if not self.id:
            return None
        snippet = self.snippet or YouTubePlaylistSnippet()
        return RemotePlaylist(
            provider_playlist_id=self.id,
            title=snippet.title,
            description=snippet.description,
            thumbnail_url=_default_thumbnail(snippet.thumbnails),
        )


class YouTubePlaylistItemSnippet(_YouTubeModel):
    title: Text = None
    description: Text = None
    published_at: Text = None
    channel_title: Text = None
    channel_id: Text = None
    video_owner_channel_title: Text = None
    video_owner_channel_id: Text = None
    thumbnails: Thumbnails = None
    position: Number = None
    resource_id: Annotated[
        YouTubeResourceId | None, BeforeValidator(_mapping_or_none)
    ] = None


class YouTubePlaylistItemContentDetails(_YouTubeModel):
    video_id: Text = None
    video_published_at: Text = None


class YouTubePlaylistItem(_YouTubeModel):
    """One playlistItems entry. snippet is absent in reference-only listings."""

    id: Text = None
    snippet: Annotated[
        YouTubePlaylistItemSnippet | None, BeforeValidator(_mapping_or_none)
    ] = None
    content_details: Annotated[
        YouTubePlaylistItemContentDetails | None, BeforeValidator(_mapping_or_none)
    ] = None

    @property
    def video_id(self) -> str | None:
        if self.content_details and self.content_details.video_id:
            return self.content_details.video_id
        if self.snippet and self.snippet.resource_id:
            return self.snippet.resource_id.video_id
        return None

    def to_remote(self, index: int) -> RemoteItem:
        """Convert to a RemoteItem; index is the entry's offset in the full listing."""
        snippet = self.snippet
        position = index
        if snippet and snippet.position is not None:
            position = snippet.position
        details = None
        if snippet is not None:
            published = None
            if self.content_details:
                published = self.content_details.video_published_at
            details = ItemDetails(
                title=snippet.title,
                description=snippet.description,
                published_at=parse_timestamp(published or snippet.published_at),
                # owner of the video, not the playlist owner
                channel_title=(
                    snippet.video_owner_channel_title or snippet.channel_title
                ),
                channel_id=snippet.video_owner_channel_id or snippet.channel_id,
                thumbnail_url=_default_thumbnail(snippet.thumbnails),
            )
        return RemoteItem(
            provider_item_id=self.video_id, position=position, details=details
        )


class YouTubeVideoSnippet(_YouTubeModel):
    title: Text = None
    description: Text = None
    published_at: Text = None
    channel_title: Text = None
    channel_id: Text = None
    thumbnails: Thumbnails = None


class YouTubeVideo(_YouTubeModel):
    id: Text = None
    snippet: Annotated[YouTubeVideoSnippet | None, BeforeValidator(_mapping_or_none)] = (
        None
    )

    def to_details(self) -> ItemDetails:
        snippet = self.snippet or YouTubeVideoSnippet()
        return ItemDetails(
            title=snippet.title,
            description=snippet.description,
            published_at=parse_timestamp(snippet.published_at),
            channel_title=snippet.channel_title,
            channel_id=snippet.channel_id,
            thumbnail_url=_default_thumbnail(snippet.thumbnails),
        )


class YouTubeListResponse(_YouTubeModel, Generic[EntryT]):
    """Any YouTube list endpoint page."""

    items: Annotated[list[EntryT], BeforeValidator(_objects_only)] = Field(
        default_factory=list
    )
    next_page_token: Text = None


class GoogleUserInfo(BaseModel):
    """OpenID Connect userinfo response."""

    model_config = ConfigDict(extra="ignore")

    sub: Text = None
    name: Text = None
    email: Text = None

    def to_profile(self, provider: str) -> ProviderProfile | None:
        if not self.sub:
            return None
        return ProviderProfile(
            provider=provider,
            account_id=self.sub,
            display_name=self.name,
            email=self.email,
        )


# =============================================================================
# OAuth 2.0 token endpoint (same shape for Google and Spotify)
# =============================================================================


class OAuthTokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: Text = None
    refresh_token: Text = None
    expires_in: Number = None
    token_type: Text = None
    scope: Text = None

    def to_result(self) -> TokenResult | None:
        if not self.access_token:
            return None
        return TokenResult(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_in=self.expires_in,
            token_type=self.token_type or "Bearer",
            scope=self.scope,
        )


# =============================================================================
# Spotify Web API (snake_case keys)
# =============================================================================


class _SpotifyModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SpotifyImage(_SpotifyModel):
    url: Text = None


Images = Annotated[list[SpotifyImage], BeforeValidator(_objects_only)]


def _first_image(images: list[SpotifyImage]) -> str | None:
    return images[0].url if images else None


class SpotifyPlaylist(_SpotifyModel):
    id: Text = None
    name: Text = None
    description: Text = None
    images: Images = Field(default_factory=list)

    def to_remote(self) -> RemotePlaylist | None:
        if not self.id:
            return None
        return RemotePlaylist(
            provider_playlist_id=self.id,
            title=self.name,
            description=self.description,
            thumbnail_url=_first_image(self.images),
        )


class SpotifyArtist(_SpotifyModel):
    id: Text = None
    name: Text = None


class SpotifyAlbum(_SpotifyModel):
    release_date: Text = None
    release_date_precision: Text = None
    images: Images = Field(default_factory=list)


class SpotifyTrack(_SpotifyModel):
    id: Text = None
    name: Text = None
    artists: Annotated[list[SpotifyArtist], BeforeValidator(_objects_only)] = Field(
        default_factory=list
    )
    album: Annotated[SpotifyAlbum | None, BeforeValidator(_mapping_or_none)] = None

    def to_details(self) -> ItemDetails:
        artist = self.artists[0] if self.artists else None
        album = self.album or SpotifyAlbum()
        return ItemDetails(
            title=self.name,
            description=None,
            published_at=parse_release_date(
                album.release_date, album.release_date_precision
            ),
            channel_title=artist.name if artist else None,
            channel_id=artist.id if artist else None,
            thumbnail_url=_first_image(album.images),
        )


class SpotifyPlaylistTrack(_SpotifyModel):
    """One playlists/{id}/tracks entry. track is null for removed content."""

    track: Annotated[SpotifyTrack | None, BeforeValidator(_mapping_or_none)] = None
    is_local: Annotated[bool | None, BeforeValidator(_flag_or_none)] = None

    def to_remote(self, index: int, detailed: bool) -> RemoteItem:
        track = self.track
        # local files have no catalog ID and can't be resolved later
        item_id = track.id if track and not self.is_local else None
        return RemoteItem(
            provider_item_id=item_id,
            position=index,
            details=track.to_details() if track and detailed else None,
        )


class SpotifyPage(_SpotifyModel, Generic[EntryT]):
    """Spotify paging object; next is the absolute URL of the following page."""

    items: Annotated[list[EntryT], BeforeValidator(_objects_only)] = Field(
        default_factory=list
    )
    next: Text = None


class SpotifyTracksResponse(_SpotifyModel):
    tracks: Annotated[list[SpotifyTrack | None], BeforeValidator(_objects_or_null)] = (
        Field(default_factory=list)
    )


class SpotifyUser(_SpotifyModel):
    id: Text = None
    display_name: Text = None
    email: Text = None

    def to_profile(self) -> ProviderProfile | None:
        if not self.id:
            return None
        return ProviderProfile(
            provider="spotify",
            account_id=self.id,
            display_name=self.display_name,
            email=self.email,
        )


__all__ = [
    "GoogleUserInfo",
    "OAuthTokenResponse",
    "SpotifyPage",
    "SpotifyPlaylist",
    "SpotifyPlaylistTrack",
    "SpotifyTrack",
    "SpotifyTracksResponse",
    "SpotifyUser",
    "YouTubeListResponse",
    "YouTubePlaylist",
    "YouTubePlaylistItem",
    "YouTubeVideo",
    "parse_release_date",
    "parse_timestamp",
]
