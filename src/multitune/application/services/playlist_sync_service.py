"""Incremental playlist sync: mirror a provider's playlists and items locally.

Hey future me - this is the heart of Multitune. One call to sync_playlists() does:

1. credential lookup (NotLinkedError BEFORE any provider call)
2. list remote playlists, upsert only the ones we don't know yet
3. per playlist: list items, upsert only the items we don't know yet
   - first sync of a playlist asks for full details in the listing
   - later syncs ask for IDs only and batch-resolve details for the NEW ones
4. re-read everything from the DB and return it

Any provider call that comes back 401 gets exactly one token refresh and one retry.
The refresh happens at most once per run; every later call reuses the new token.

Each repository call commits on its own. If playlist 7 blows up, playlists 1-6 and
their items stay mirrored and the next run picks up where this one died.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from multitune.domain.dtos import ItemDetails, RemoteItem
from multitune.domain.entities import Provider, ServiceCredential, SyncResult
from multitune.domain.exceptions import (
    AuthExpiredError,
    ConfigurationError,
    NotLinkedError,
    ProviderError,
    ProviderUnauthorizedError,
    RefreshError,
)
from multitune.domain.ports import (
    ICredentialStore,
    IPlaylistMirror,
    IProviderClient,
    ITokenRefresher,
)
from multitune.infrastructure.observability.logger_template import log_operation

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _SyncRun:
    """Mutable state of one sync_playlists() call."""

    user_id: int
    provider: Provider
    client: IProviderClient
    credential: ServiceCredential
    access_token: str
    token_refreshed: bool = False
    playlists_added: int = 0
    items_added: int = 0


class PlaylistSyncService:
    """Reconciles remote playlists and items against the local mirror."""

    def __init__(
        self,
        credential_store: ICredentialStore,
        mirror: IPlaylistMirror,
        clients: Mapping[Provider, IProviderClient],
        refreshers: Mapping[Provider, ITokenRefresher],
    ) -> None:
        """Initialize sync service.

        Args:
            credential_store: Per-user OAuth token store
            mirror: Local playlist/item store
            clients: Provider API client per provider
            refreshers: Token refresher per provider
        """
        self._credentials = credential_store
        self._mirror = mirror
        self._clients = clients
        self._refreshers = refreshers

    async def sync_playlists(self, user_id: int, provider: Provider) -> SyncResult:
        """Sync all playlists of one provider for a user.

        Args:
            user_id: Local user ID
            provider: Which provider to sync

        Returns:
            The full local playlist set (items nested) plus run counters

        Raises:
            NotLinkedError: No credential stored for this provider
            AuthExpiredError: 401 that a single refresh couldn't fix
            ProviderError: Any other provider failure (not retried)
            StoreError: Database failure
        """
        client = self._clients.get(provider)
        if client is None:
            raise ConfigurationError(f"No API client configured for {provider.value}")

        async with log_operation(
            logger, "playlist_sync", user_id=user_id, provider=provider.value
        ) as outcome:
            credential = await self._credentials.get(user_id, provider.value)
            if credential is None:
                raise NotLinkedError(user_id, provider.value)

            run = _SyncRun(
                user_id=user_id,
                provider=provider,
                client=client,
                credential=credential,
                access_token=credential.access_token,
            )
            result = await self._sync(run)
            outcome.update(
                playlists_added=run.playlists_added,
                items_added=run.items_added,
                token_refreshed=run.token_refreshed,
            )
        return result

    async def _sync(self, run: _SyncRun) -> SyncResult:
        existing = await self._mirror.list_playlists(run.user_id, run.provider)
        # provider playlist id → local surrogate id, insertion ordered
        playlist_ids: dict[str, int] = {
            p.provider_playlist_id: p.id for p in existing
        }

        remote_playlists = await self._call(run, run.client.list_playlists)
        for remote in remote_playlists:
            # known locally, or a duplicate further down the same listing
            if remote.provider_playlist_id in playlist_ids:
                continue
            playlist_ids[remote.provider_playlist_id] = (
                await self._mirror.upsert_playlist(run.user_id, run.provider, remote)
            )
            run.playlists_added += 1

        logger.debug(
            "%s: %d playlist(s) known, %d new",
            run.provider.value,
            len(playlist_ids),
            run.playlists_added,
        )

        for provider_playlist_id, local_id in playlist_ids.items():
            await self._sync_items(run, local_id, provider_playlist_id)

        playlists = await self._mirror.get_playlists_with_items(
            run.user_id, run.provider
        )
        return SyncResult(
            provider=run.provider,
            playlists=playlists,
            playlists_added=run.playlists_added,
            items_added=run.items_added,
            token_refreshed=run.token_refreshed,
        )

    # Listen up - "initial" means WE have no items for this playlist yet, not that the
    # playlist is new. An empty playlist stays in initial mode until it gets its first item.
    async def _sync_items(
        self, run: _SyncRun, local_id: int, provider_playlist_id: str
    ) -> None:
        known_ids = await self._mirror.get_item_ids(local_id)
        initial = not known_ids

        remote_items = await self._call(
            run, run.client.list_playlist_items, provider_playlist_id, initial
        )

        seen = set(known_ids)
        new_items: list[tuple[str, RemoteItem]] = []
        for item in remote_items:
            if not item.provider_item_id:
                logger.info(
                    "Skipping %s item without id in playlist %s (deleted or local)",
                    run.provider.value,
                    provider_playlist_id,
                )
                continue
            if item.provider_item_id in seen:
                continue
            seen.add(item.provider_item_id)
            new_items.append((item.provider_item_id, item))

        if not new_items:
            return

        unresolved = [item_id for item_id, item in new_items if item.details is None]
        resolved: dict[str, ItemDetails] = {}
        if unresolved:
            resolved = await self._call(run, run.client.get_item_details, unresolved)

        for item_id, item in new_items:
            details = item.details or resolved.get(item_id)
            if details is None:
                # listed but not describable (private, removed since); keep the row so
                # the next run doesn't fetch it again
                logger.info(
                    "%s item %s: no details returned, storing id only",
                    run.provider.value,
                    item_id,
                )
            await self._mirror.upsert_item(local_id, item_id, details, item.position)
            run.items_added += 1

        logger.debug(
            "%s playlist %s: %d new item(s) (%s sync)",
            run.provider.value,
            provider_playlist_id,
            len(new_items),
            "initial" if initial else "incremental",
        )

    # Hey future me - EVERY provider call goes through here. Don't call run.client
    # directly, or a 401 will escape as a raw ProviderUnauthorizedError instead of the
    # refresh-once-and-retry dance.
    async def _call(
        self, run: _SyncRun, fn: Callable[..., Awaitable[T]], *args: Any
    ) -> T:
        try:
            return await fn(run.access_token, *args)
        except ProviderUnauthorizedError as e:
            if run.token_refreshed:
                # already refreshed in this run; a fresh token got rejected too
                raise AuthExpiredError(run.provider.value) from e
            await self._refresh(run, e)

        # Any failure right after a refresh means the new token is no good either
        try:
            return await fn(run.access_token, *args)
        except ProviderError as e:
            raise AuthExpiredError(run.provider.value) from e

    async def _refresh(self, run: _SyncRun, cause: ProviderUnauthorizedError) -> None:
        service = run.provider.value
        refresh_token = run.credential.refresh_token
        if not refresh_token:
            logger.warning("%s token rejected and no refresh token stored", service)
            raise AuthExpiredError(service) from cause

        refresher = self._refreshers.get(run.provider)
        if refresher is None:
            raise ConfigurationError(f"No token refresher configured for {service}")

        try:
            tokens = await refresher.refresh_token(refresh_token)
        except RefreshError as e:
            logger.warning(
                "%s token refresh failed for user %s: %s (%s)",
                service,
                run.user_id,
                e.message,
                e.payload,
            )
            raise AuthExpiredError(service) from e

        expires_at = None
        if tokens.expires_in:
            expires_at = datetime.now(UTC) + timedelta(seconds=tokens.expires_in)
        run.credential = await self._credentials.upsert(
            run.user_id,
            service,
            tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=expires_at,
        )
        run.access_token = tokens.access_token
        run.token_refreshed = True
        logger.info("Refreshed %s access token for user %s", service, run.user_id)
