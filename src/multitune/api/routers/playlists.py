"""Playlist endpoints: link status, sync, and reads from the local mirror."""

import logging

from fastapi import APIRouter, Depends

from multitune.api.dependencies import (
    get_credential_store,
    get_current_user,
    get_playlist_mirror,
    get_sync_service,
)
from multitune.api.schemas import (
    LinkedResponse,
    PlaylistItemResponse,
    PlaylistItemsResponse,
    PlaylistsResponse,
)
from multitune.application.services import PlaylistSyncService, TokenClaims
from multitune.domain.entities import Provider
from multitune.domain.exceptions import EntityNotFoundException
from multitune.infrastructure.persistence import (
    CredentialRepository,
    PlaylistMirrorRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{provider}/linked", response_model=LinkedResponse)
async def get_linked_status(
    provider: Provider,
    user: TokenClaims = Depends(get_current_user),
    credentials: CredentialRepository = Depends(get_credential_store),
) -> LinkedResponse:
    """Whether the user has linked this provider."""
    linked = await credentials.is_linked(user.user_id, provider.value)
    logger.debug("%s linked for user %s: %s", provider.value, user.user_id, linked)
    return LinkedResponse(linked=linked)


# Hey future me - GET with side effects, yes. The frontend calls this when the user opens
# the playlists tab and expects fresh data, so "list" IS "sync then list". Each run only
# fetches what's new, so hammering it is cheap on quota.
@router.get("/{provider}/playlists", response_model=PlaylistsResponse)
async def sync_and_list_playlists(
    provider: Provider,
    user: TokenClaims = Depends(get_current_user),
    sync_service: PlaylistSyncService = Depends(get_sync_service),
) -> PlaylistsResponse:
    """Sync the provider into the local mirror and return all playlists with items.

    Errors: 400 not linked, 401 re-link required, 502 provider failure (with details).
    """
    result = await sync_service.sync_playlists(user.user_id, provider)
    return PlaylistsResponse.from_result(result)


@router.get(
    "/db/{provider}/playlist/{playlist_id}/items",
    response_model=PlaylistItemsResponse,
)
async def get_playlist_items(
    provider: Provider,
    playlist_id: int,
    user: TokenClaims = Depends(get_current_user),
    mirror: PlaylistMirrorRepository = Depends(get_playlist_mirror),
) -> PlaylistItemsResponse:
    """Items of one of the user's playlists, from the mirror only (no provider calls)."""
    playlist = await mirror.get_playlist(user.user_id, provider, playlist_id)
    if playlist is None:
        # Other users' playlists are indistinguishable from missing ones
        raise EntityNotFoundException("Playlist", playlist_id)
    items = await mirror.get_items(playlist.id)
    return PlaylistItemsResponse(
        items=[PlaylistItemResponse.from_entity(item) for item in items]
    )


@router.get("/db/playlist/{playlist_id}/items", response_model=PlaylistItemsResponse)
async def get_youtube_playlist_items(
    playlist_id: int,
    user: TokenClaims = Depends(get_current_user),
    mirror: PlaylistMirrorRepository = Depends(get_playlist_mirror),
) -> PlaylistItemsResponse:
    """Older frontend path for YouTube playlist items."""
    return await get_playlist_items(Provider.YOUTUBE, playlist_id, user, mirror)
