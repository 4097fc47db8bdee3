"""YouTube Data API v3 client."""

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
    GoogleUserInfo,
    YouTubeListResponse,
    YouTubePlaylist,
    YouTubePlaylistItem,
    YouTubeVideo,
)

logger = logging.getLogger(__name__)


class YouTubeClient(BaseProviderClient):
    """Read-only client for the signed-in user's YouTube playlists."""

    API_BASE_URL = "https://www.googleapis.com/youtube/v3"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    provider = Provider.YOUTUBE

    async def list_playlists(self, access_token: str) -> list[RemotePlaylist]:
        """List all playlists owned by the token's channel."""
        params = {
            "part": "snippet,contentDetails",
            "mine": "true",
            "maxResults": PAGE_SIZE,
        }
        playlists: list[RemotePlaylist] = []
        async for page in self._paginate(
            f"{self.API_BASE_URL}/playlists",
            access_token,
            params,
            YouTubeListResponse[YouTubePlaylist],
        ):
            for entry in page.items:
                remote = entry.to_remote()
                if remote is None:
                    logger.warning("Skipping YouTube playlist entry without id")
                    continue
                playlists.append(remote)
        return playlists

    # Hey future me - the part parameter is the whole trick of incremental sync! "snippet"
    # costs quota and bandwidth, so after the initial sync we only ask for contentDetails
    # (just the videoId) and resolve details for the NEW videos via videos?id=... in
    # batches. With detailed=False every RemoteItem comes back with details=None.
    async def list_playlist_items(
        self, access_token: str, playlist_id: str, detailed: bool
    ) -> list[RemoteItem]:
        """List all entries of a playlist, in playlist order."""
        params = {
            "part": "snippet,contentDetails" if detailed else "contentDetails",
            "playlistId": playlist_id,
            "maxResults": PAGE_SIZE,
        }
        items: list[RemoteItem] = []
        async for page in self._paginate(
            f"{self.API_BASE_URL}/playlistItems",
            access_token,
            params,
            YouTubeListResponse[YouTubePlaylistItem],
        ):
            for entry in page.items:
                items.append(entry.to_remote(len(items)))
        return items

    async def _fetch_details(
        self, access_token: str, item_ids: list[str]
    ) -> dict[str, ItemDetails]:
        payload = await self._get(
            f"{self.API_BASE_URL}/videos",
            access_token,
            {"part": "snippet,contentDetails", "id": ",".join(item_ids)},
        )
        page = self._parse(YouTubeListResponse[YouTubeVideo], payload)
        return {video.id: video.to_details() for video in page.items if video.id}

    async def get_profile(self, access_token: str) -> ProviderProfile:
        """Get the Google account behind the token (OpenID userinfo)."""
        payload = await self._get(self.USERINFO_URL, access_token)
        profile = self._parse(GoogleUserInfo, payload).to_profile(self.provider.value)
        if profile is None:
            raise ProviderError(
                "Google userinfo response has no account id", payload=payload
            )
        return profile

    def _next_page(
        self, url: str, params: dict[str, Any] | None, page: Any
    ) -> tuple[str, dict[str, Any] | None] | None:
        if not page.next_page_token:
            return None
        return url, {**(params or {}), "pageToken": page.next_page_token}
