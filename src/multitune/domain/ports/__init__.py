"""Domain ports (interfaces) for dependency inversion.

Hey future me - the sync engine (application/services/playlist_sync_service.py) only knows
these ABCs. Infrastructure provides the SQLAlchemy repositories and httpx clients, tests
provide AsyncMocks or in-memory SQLite. Keep these signatures provider-agnostic!
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from multitune.domain.dtos import (
    ItemDetails,
    ProviderProfile,
    RemoteItem,
    RemotePlaylist,
    TokenResult,
)
from multitune.domain.entities import (
    Playlist,
    PlaylistItem,
    Provider,
    ServiceCredential,
    User,
)


class IUserRepository(ABC):
    """Repository interface for users."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> User | None:
        """Get a user by ID."""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> User | None:
        """Get a user by username."""
        pass

    @abstractmethod
    async def create(self, username: str, email: str | None = None) -> User:
        """Create a user."""
        pass


class ICredentialStore(ABC):
    """Per-user, per-service OAuth token store."""

    @abstractmethod
    async def get(self, user_id: int, service: str) -> ServiceCredential | None:
        """Get the credential for (user, service), or None if not linked."""
        pass

    @abstractmethod
    async def upsert(
        self,
        user_id: int,
        service: str,
        access_token: str,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> ServiceCredential:
        """Insert or update the credential.

        A None refresh_token keeps the stored one.
        """
        pass

    @abstractmethod
    async def is_linked(self, user_id: int, service: str) -> bool:
        """Check whether a credential exists for (user, service)."""
        pass


class IPlaylistMirror(ABC):
    """Local mirror of provider playlists and items, scoped per user."""

    @abstractmethod
    async def list_playlists(self, user_id: int, provider: Provider) -> list[Playlist]:
        """List the user's mirrored playlists (items not loaded)."""
        pass

    @abstractmethod
    async def upsert_playlist(
        self, user_id: int, provider: Provider, remote: RemotePlaylist
    ) -> int:
        """Insert or update a playlist and return its surrogate ID."""
        pass

    @abstractmethod
    async def get_item_ids(self, playlist_id: int) -> set[str]:
        """Get provider item IDs already mirrored for a playlist."""
        pass

    @abstractmethod
    async def upsert_item(
        self,
        playlist_id: int,
        provider_item_id: str,
        details: ItemDetails | None,
        position: int | None,
    ) -> int:
        """Insert or update a playlist item and return its surrogate ID."""
        pass

    @abstractmethod
    async def get_playlists_with_items(
        self, user_id: int, provider: Provider
    ) -> list[Playlist]:
        """Get playlists ordered by title with items nested and ordered by position."""
        pass

    @abstractmethod
    async def get_playlist(
        self, user_id: int, provider: Provider, playlist_id: int
    ) -> Playlist | None:
        """Get one playlist if it belongs to the user."""
        pass

    @abstractmethod
    async def get_items(self, playlist_id: int) -> list[PlaylistItem]:
        """Get a playlist's items ordered by position."""
        pass


class IProviderClient(ABC):
    """Paginated read access to a third-party playlist API."""

    provider: Provider

    @abstractmethod
    async def list_playlists(self, access_token: str) -> list[RemotePlaylist]:
        """List ALL of the current user's playlists (follows every page)."""
        pass

    @abstractmethod
    async def list_playlist_items(
        self, access_token: str, playlist_id: str, detailed: bool
    ) -> list[RemoteItem]:
        """List ALL items of a playlist.

        detailed=False asks only for content references; details stay None.
        """
        pass

    @abstractmethod
    async def get_item_details(
        self, access_token: str, item_ids: Sequence[str]
    ) -> dict[str, ItemDetails]:
        """Resolve full details by ID, batched at the provider's 50-ID limit."""
        pass

    @abstractmethod
    async def get_profile(self, access_token: str) -> ProviderProfile:
        """Get the identity behind an access token."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP resources."""
        pass


class ITokenRefresher(ABC):
    """Exchanges a refresh token for a new access token."""

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> TokenResult:
        """Single attempt; raises RefreshError on any failure."""
        pass


__all__ = [
    "ICredentialStore",
    "IPlaylistMirror",
    "IProviderClient",
    "ITokenRefresher",
    "IUserRepository",
]
