"""Repository implementations for domain entities."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from multitune.domain.dtos import ItemDetails, RemotePlaylist
from multitune.domain.entities import (
    Playlist,
    PlaylistItem,
    Provider,
    ServiceCredential,
    User,
)
from multitune.domain.exceptions import StoreError
from multitune.domain.ports import (
    ICredentialStore,
    IPlaylistMirror,
    IUserRepository,
)

from .models import (
    PlaylistItemModel,
    PlaylistModel,
    UserModel,
    UserServiceModel,
    ensure_utc_aware,
)

logger = logging.getLogger(__name__)

# Database.session_scope has this shape; tests can pass any async context manager factory.
SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


# Hey future me, unlike a classic request-scoped repository these take a session SCOPE
# FACTORY, not a session! Every method opens its own scope and commits on exit. The sync
# engine relies on that: each upsert is durable on its own, so a sync that fails on playlist
# 7 keeps playlists 1-6. Don't "optimize" this into one long transaction without changing
# the partial-success contract.
class _ScopedRepository:
    def __init__(self, session_scope: SessionScope) -> None:
        """Initialize repository with a session scope factory."""
        self._session_scope = session_scope


def _aware(dt: datetime | None) -> datetime | None:
    return ensure_utc_aware(dt) if dt is not None else None


def _to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        email=model.email,
        created_at=_aware(model.created_at),
    )


def _to_credential(model: UserServiceModel) -> ServiceCredential:
    return ServiceCredential(
        user_id=model.user_id,
        service=model.service,
        access_token=model.access_token,
        refresh_token=model.refresh_token,
        expires_at=_aware(model.expires_at),
    )


def _to_playlist(
    model: PlaylistModel, items: list[PlaylistItem] | None = None
) -> Playlist:
    return Playlist(
        id=model.id,
        user_id=model.user_id,
        provider=Provider(model.provider),
        provider_playlist_id=model.provider_playlist_id,
        title=model.title,
        description=model.description,
        thumbnail_url=model.thumbnail_url,
        created_at=_aware(model.created_at),
        updated_at=_aware(model.updated_at),
        items=items,
    )


def _to_item(model: PlaylistItemModel) -> PlaylistItem:
    return PlaylistItem(
        id=model.id,
        playlist_id=model.playlist_id,
        provider_item_id=model.provider_item_id,
        title=model.title,
        description=model.description,
        published_at=_aware(model.published_at),
        channel_title=model.channel_title,
        channel_id=model.channel_id,
        thumbnail_url=model.thumbnail_url,
        position=model.position,
        added_at=_aware(model.added_at),
    )


# Positioned items first (ascending), NULL positions last, ties by insertion order.
# (position IS NULL) sorts the same way on SQLite and PostgreSQL, unlike NULLS LAST defaults.
_ITEM_ORDER = (
    PlaylistItemModel.position.is_(None),
    PlaylistItemModel.position,
    PlaylistItemModel.id,
)
_PLAYLIST_ORDER = (PlaylistModel.title.is_(None), PlaylistModel.title, PlaylistModel.id)


class UserRepository(_ScopedRepository, IUserRepository):
    """SQLAlchemy implementation of the user repository."""

    async def get_by_id(self, user_id: int) -> User | None:
        """Get a user by ID."""
        return await self._get_one(UserModel.id == user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        return await self._get_one(UserModel.email == email)

    async def get_by_username(self, username: str) -> User | None:
        """Get a user by username."""
        return await self._get_one(UserModel.username == username)

    async def create(self, username: str, email: str | None = None) -> User:
        """Create a user and return it with its new ID."""
        try:
            async with self._session_scope() as session:
                model = UserModel(username=username, email=email)
                session.add(model)
                await session.flush()
                return _to_user(model)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create user {username!r}: {e}") from e

    async def _get_one(self, *criteria: object) -> User | None:
        try:
            async with self._session_scope() as session:
                result = await session.execute(select(UserModel).where(*criteria))
                model = result.scalar_one_or_none()
                return _to_user(model) if model else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load user: {e}") from e


class CredentialRepository(_ScopedRepository, ICredentialStore):
    """Credential store backed by the user_services table."""

    async def get(self, user_id: int, service: str) -> ServiceCredential | None:
        """Get the credential for (user, service), or None if not linked."""
        try:
            async with self._session_scope() as session:
                model = await self._find(session, user_id, service)
                return _to_credential(model) if model else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load {service} credential: {e}") from e

    # Listen up - UPSERT pattern: row exists → update, else → insert. refresh_token=None
    # means "provider didn't send one" (Google only sends it on first consent, Spotify only
    # when it rotates), so we KEEP the stored one instead of wiping it.
    async def upsert(
        self,
        user_id: int,
        service: str,
        access_token: str,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> ServiceCredential:
        """Insert or update the credential for (user, service)."""
        try:
            async with self._session_scope() as session:
                model = await self._find(session, user_id, service)
                now = datetime.now(UTC)
                if model:
                    model.access_token = access_token
                    if refresh_token:
                        model.refresh_token = refresh_token
                    model.expires_at = expires_at
                    model.updated_at = now
                else:
                    model = UserServiceModel(
                        user_id=user_id,
                        service=service,
                        access_token=access_token,
                        refresh_token=refresh_token,
                        expires_at=expires_at,
                        created_at=now,
                        updated_at=now,
                    )
                    session.add(model)
                await session.flush()
                return _to_credential(model)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to store {service} credential: {e}") from e

    async def is_linked(self, user_id: int, service: str) -> bool:
        """Check whether a credential exists for (user, service)."""
        return await self.get(user_id, service) is not None

    @staticmethod
    async def _find(
        session: AsyncSession, user_id: int, service: str
    ) -> UserServiceModel | None:
        stmt = select(UserServiceModel).where(
            UserServiceModel.user_id == user_id,
            UserServiceModel.service == service,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


class PlaylistMirrorRepository(_ScopedRepository, IPlaylistMirror):
    """Local mirror of provider playlists and their items."""

    async def list_playlists(self, user_id: int, provider: Provider) -> list[Playlist]:
        """List the user's mirrored playlists without items."""
        try:
            async with self._session_scope() as session:
                stmt = (
                    select(PlaylistModel)
                    .where(
                        PlaylistModel.user_id == user_id,
                        PlaylistModel.provider == provider.value,
                    )
                    .order_by(*_PLAYLIST_ORDER)
                )
                result = await session.execute(stmt)
                return [_to_playlist(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list {provider.value} playlists: {e}") from e

    # Hey future me - this is "INSERT ... ON CONFLICT (user_id, provider,
    # provider_playlist_id) DO UPDATE" spelled out as select-then-write so it behaves the
    # same on SQLite and PostgreSQL. The returned id is the stable surrogate key.
    async def upsert_playlist(
        self, user_id: int, provider: Provider, remote: RemotePlaylist
    ) -> int:
        """Insert or update a playlist and return its surrogate ID."""
        try:
            async with self._session_scope() as session:
                stmt = select(PlaylistModel).where(
                    PlaylistModel.user_id == user_id,
                    PlaylistModel.provider == provider.value,
                    PlaylistModel.provider_playlist_id == remote.provider_playlist_id,
                )
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
                now = datetime.now(UTC)

                if model:
                    model.title = remote.title
                    model.description = remote.description
                    model.thumbnail_url = remote.thumbnail_url
                    model.updated_at = now
                else:
                    model = PlaylistModel(
                        user_id=user_id,
                        provider=provider.value,
                        provider_playlist_id=remote.provider_playlist_id,
                        title=remote.title,
                        description=remote.description,
                        thumbnail_url=remote.thumbnail_url,
                        created_at=now,
                        updated_at=now,
                    )
                    session.add(model)
                await session.flush()
                return model.id
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to upsert playlist {remote.provider_playlist_id}: {e}"
            ) from e

    async def get_item_ids(self, playlist_id: int) -> set[str]:
        """Get provider item IDs already mirrored for a playlist."""
        try:
            async with self._session_scope() as session:
                stmt = select(PlaylistItemModel.provider_item_id).where(
                    PlaylistItemModel.playlist_id == playlist_id
                )
                result = await session.execute(stmt)
                return set(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to load items of playlist {playlist_id}: {e}"
            ) from e

    async def upsert_item(
        self,
        playlist_id: int,
        provider_item_id: str,
        details: ItemDetails | None,
        position: int | None,
    ) -> int:
        """Insert or update a playlist item keyed on (playlist, provider item ID)."""
        details = details or ItemDetails()
        try:
            async with self._session_scope() as session:
                stmt = select(PlaylistItemModel).where(
                    PlaylistItemModel.playlist_id == playlist_id,
                    PlaylistItemModel.provider_item_id == provider_item_id,
                )
                result = await session.execute(stmt)
                model = result.scalar_one_or_none()
                if model is None:
                    model = PlaylistItemModel(
                        playlist_id=playlist_id, provider_item_id=provider_item_id
                    )
                    session.add(model)

                model.title = details.title
                model.description = details.description
                model.published_at = details.published_at
                model.channel_title = details.channel_title
                model.channel_id = details.channel_id
                model.thumbnail_url = details.thumbnail_url
                model.position = position
                model.added_at = datetime.now(UTC)
                await session.flush()
                return model.id
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to upsert item {provider_item_id} "
                f"into playlist {playlist_id}: {e}"
            ) from e

    async def get_playlists_with_items(
        self, user_id: int, provider: Provider
    ) -> list[Playlist]:
        """Get playlists ordered by title with items nested and ordered by position."""
        try:
            async with self._session_scope() as session:
                stmt = (
                    select(PlaylistModel)
                    .where(
                        PlaylistModel.user_id == user_id,
                        PlaylistModel.provider == provider.value,
                    )
                    .order_by(*_PLAYLIST_ORDER)
                )
                playlist_models = (await session.execute(stmt)).scalars().all()
                if not playlist_models:
                    return []

                items_stmt = (
                    select(PlaylistItemModel)
                    .where(
                        PlaylistItemModel.playlist_id.in_(
                            [m.id for m in playlist_models]
                        )
                    )
                    .order_by(*_ITEM_ORDER)
                )
                item_models = (await session.execute(items_stmt)).scalars().all()

                grouped: dict[int, list[PlaylistItem]] = {
                    m.id: [] for m in playlist_models
                }
                for item in item_models:
                    grouped[item.playlist_id].append(_to_item(item))

                return [_to_playlist(m, grouped[m.id]) for m in playlist_models]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load {provider.value} playlists: {e}") from e

    async def get_playlist(
        self, user_id: int, provider: Provider, playlist_id: int
    ) -> Playlist | None:
        """Get one playlist if it belongs to the user (items not loaded)."""
        try:
            async with self._session_scope() as session:
                stmt = select(PlaylistModel).where(
                    PlaylistModel.id == playlist_id,
                    PlaylistModel.user_id == user_id,
                    PlaylistModel.provider == provider.value,
                )
                model = (await session.execute(stmt)).scalar_one_or_none()
                return _to_playlist(model) if model else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load playlist {playlist_id}: {e}") from e

    async def get_items(self, playlist_id: int) -> list[PlaylistItem]:
        """Get a playlist's items ordered by position."""
        try:
            async with self._session_scope() as session:
                stmt = (
                    select(PlaylistItemModel)
                    .where(PlaylistItemModel.playlist_id == playlist_id)
                    .order_by(*_ITEM_ORDER)
                )
                result = await session.execute(stmt)
                return [_to_item(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to load items of playlist {playlist_id}: {e}"
            ) from e
