"""Spotify Web API client."""

import logging
from typing import Any

from multitune.domain.dtos import (
    ItemDetails,
    ProviderProfile,
    RemoteItem,
    RemotePlaylist,
)
from multitune.domain.entities import Provider
from multitune.domain.exceptions import ProviderError

from .provider_client import PAGE_SIZE, BaseProviderClient
from .schemas import (
    SpotifyPage,
    SpotifyPlaylist,
    SpotifyPlaylistTrack,
    SpotifyTracksResponse,
    SpotifyUser,
)

logger = logging.getLogger(__name__)

# Spotify's field filter, keeps reference-only listings small
_REFERENCE_FIELDS = "items(is_local,track(id)),next"


class SpotifyClient(BaseProviderClient):
    """Read-only client for the current user's Spotify playlists."""

    API_BASE_URL = "https://api.spotify.com/v1"

    provider = Provider.SPOTIFY

    # Hey future me, /me/playlists includes playlists the user FOLLOWS, not just owns.
    # That matches what the Spotify app shows under "Your Library", so we mirror them all.
    async def list_playlists(self, access_token: str) -> list[RemotePlaylist]:
        """List all playlists in the user's library."""
        playlists: list[RemotePlaylist] = []
        async for page in self._paginate(
            f"{self.API_BASE_URL}/me/playlists",
            access_token,
            {"limit": PAGE_SIZE},
            SpotifyPage[SpotifyPlaylist],
        ):
            for entry in page.items:
                remote = entry.to_remote()
                if remote is None:
                    logger.warning("Skipping Spotify playlist entry without id")
                    continue
                playlists.append(remote)
        return playlists

    async def list_playlist_items(
        self, access_token: str, playlist_id: str, detailed: bool
    ) -> list[RemoteItem]:
        """List all tracks of a playlist; position is the index within the playlist."""
        params: dict[str, Any] = {"limit": PAGE_SIZE}
        if not detailed:
            params["fields"] = _REFERENCE_FIELDS
        items: list[RemoteItem] = []
        async for page in self._paginate(
            f"{self.API_BASE_URL}/playlists/{playlist_id}/tracks",
            access_token,
            params,
            SpotifyPage[SpotifyPlaylistTrack],
        ):
            for entry in page.items:
                items.append(entry.to_remote(len(items), detailed))
        return items

    async def _fetch_details(
        self, access_token: str, item_ids: list[str]
    ) -> dict[str, ItemDetails]:
        payload = await self._get(
            f"{self.API_BASE_URL}/tracks",
            access_token,
            {"ids": ",".join(item_ids)},
        )
        response = self._parse(SpotifyTracksResponse, payload)
        return {
            track.id: track.to_details()
            for track in response.tracks
            if track is not None and track.id
        }

    async def get_profile(self, access_token: str) -> ProviderProfile:
        """Get the Spotify account behind the token."""
        payload = await self._get(f"{self.API_BASE_URL}/me", access_token)
        profile = self._parse(SpotifyUser, payload).to_profile()
        if profile is None:
            raise ProviderError("Spotify profile has no account id", payload=payload)
        return profile

    # Listen up - Spotify hands out the next page as an ABSOLUTE URL that already carries
    # offset and limit. Passing our params again would duplicate them, so we send None.
    def _next_page(
        self, url: str, params: dict[str, Any] | None, page: Any
    ) -> tuple[str, dict[str, Any] | None] | None:
        if not page.next:
            return None
        return page.next, None
