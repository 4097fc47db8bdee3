"""Tests for PlaylistSyncService.

Hey future me - these run against the REAL repositories on in-memory SQLite and a mocked
provider client. That way "idempotent" and "partial success" are checked against what's
actually in the database, not against mock call lists.
"""

from unittest.mock import AsyncMock

import pytest
from pytest_mock import MockerFixture

from multitune.application.services import PlaylistSyncService
from multitune.domain.dtos import ItemDetails, RemoteItem, RemotePlaylist, TokenResult
from multitune.domain.entities import Provider, User
from multitune.domain.exceptions import (
    AuthExpiredError,
    NotLinkedError,
    ProviderError,
    ProviderUnauthorizedError,
    RefreshError,
)
from multitune.domain.ports import IProviderClient, ITokenRefresher
from multitune.infrastructure.persistence import (
    CredentialRepository,
    PlaylistMirrorRepository,
)


def _details(item_id: str) -> ItemDetails:
    return ItemDetails(title=f"Title {item_id}", channel_title="Channel")


def _item(item_id: str | None, position: int, detailed: bool = True) -> RemoteItem:
    details = _details(item_id) if detailed and item_id else None
    return RemoteItem(provider_item_id=item_id, position=position, details=details)


class FakeRemote:
    """Remote playlist state the mocked client serves from."""

    def __init__(self) -> None:
        self.playlists: list[RemotePlaylist] = []
        self.items: dict[str, list[str | None]] = {}

    def add(self, playlist_id: str, title: str, item_ids: list[str | None]) -> None:
        self.playlists.append(RemotePlaylist(playlist_id, title=title))
        self.items[playlist_id] = item_ids

    async def list_playlists(self, access_token: str) -> list[RemotePlaylist]:
        return list(self.playlists)

    async def list_playlist_items(
        self, access_token: str, playlist_id: str, detailed: bool
    ) -> list[RemoteItem]:
        return [
            _item(item_id, index, detailed)
            for index, item_id in enumerate(self.items[playlist_id])
        ]

    async def get_item_details(
        self, access_token: str, item_ids: list[str]
    ) -> dict[str, ItemDetails]:
        return {item_id: _details(item_id) for item_id in item_ids}


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def client(remote: FakeRemote) -> AsyncMock:
    client = AsyncMock(spec=IProviderClient)
    client.list_playlists.side_effect = remote.list_playlists
    client.list_playlist_items.side_effect = remote.list_playlist_items
    client.get_item_details.side_effect = remote.get_item_details
    return client


@pytest.fixture
def refresher() -> AsyncMock:
    refresher = AsyncMock(spec=ITokenRefresher)
    refresher.refresh_token.return_value = TokenResult(
        access_token="access-2", expires_in=3600
    )
    return refresher


@pytest.fixture
def service(
    credential_repository: CredentialRepository,
    mirror: PlaylistMirrorRepository,
    client: AsyncMock,
    refresher: AsyncMock,
) -> PlaylistSyncService:
    return PlaylistSyncService(
        credential_repository,
        mirror,
        {Provider.YOUTUBE: client},
        {Provider.YOUTUBE: refresher},
    )


@pytest.fixture
async def linked_user(user: User, credential_repository: CredentialRepository) -> User:
    await credential_repository.upsert(user.id, "youtube", "access-1", "refresh-1")
    return user


class TestSyncBasics:
    """Initial and incremental sync behaviour."""

    async def test_not_linked_makes_no_provider_calls(
        self, service: PlaylistSyncService, client: AsyncMock, user: User
    ) -> None:
        with pytest.raises(NotLinkedError) as exc_info:
            await service.sync_playlists(user.id, Provider.YOUTUBE)

        assert exc_info.value.message == "YouTube not linked"
        client.list_playlists.assert_not_called()

    async def test_initial_sync_of_two_playlists(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL-b", "Workout", ["v1", "v2", "v3"])
        remote.add("PL-a", "Chill", ["v4", "v5"])

        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert result.playlists_added == 2
        assert result.items_added == 5
        assert result.token_refreshed is False
        # ordered by title, items by position
        assert [p.title for p in result.playlists] == ["Chill", "Workout"]
        assert [i.provider_item_id for i in result.playlists[1].items or []] == [
            "v1",
            "v2",
            "v3",
        ]
        assert result.playlists[0].items[0].title == "Title v4"  # type: ignore[index]
        # first sync of a playlist asks for full details in the listing
        for call in client.list_playlist_items.await_args_list:
            assert call.args[2] is True
        client.get_item_details.assert_not_called()

    async def test_incremental_sync_resolves_only_new_items(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a", "b"])
        await service.sync_playlists(linked_user.id, Provider.YOUTUBE)
        client.list_playlist_items.reset_mock()

        remote.items["PL1"] = ["a", "b", "c"]
        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert result.playlists_added == 0
        assert result.items_added == 1
        client.list_playlist_items.assert_awaited_once_with("access-1", "PL1", False)
        client.get_item_details.assert_awaited_once_with("access-1", ["c"])
        [playlist] = result.playlists
        assert [i.provider_item_id for i in playlist.items or []] == ["a", "b", "c"]
        assert playlist.items[2].title == "Title c"  # type: ignore[index]

    async def test_sync_is_idempotent(
        self,
        service: PlaylistSyncService,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a", "b"])
        remote.add("PL2", "Other", ["c"])

        first = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)
        second = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert second.playlists_added == 0
        assert second.items_added == 0
        assert [p.id for p in second.playlists] == [p.id for p in first.playlists]
        assert [
            [i.id for i in p.items or []] for p in second.playlists
        ] == [[i.id for i in p.items or []] for p in first.playlists]

    async def test_exactly_one_upsert_per_new_item(
        self,
        service: PlaylistSyncService,
        mirror: PlaylistMirrorRepository,
        remote: FakeRemote,
        linked_user: User,
        mocker: MockerFixture,
    ) -> None:
        remote.add("PL1", "Mix", ["a", "b"])
        await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        remote.items["PL1"] = ["a", "b", "c", "d", "e"]
        spy = mocker.spy(mirror, "upsert_item")
        await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert spy.call_count == 3
        assert sorted(call.args[1] for call in spy.call_args_list) == ["c", "d", "e"]

    async def test_known_playlists_are_not_rewritten(
        self,
        service: PlaylistSyncService,
        mirror: PlaylistMirrorRepository,
        remote: FakeRemote,
        linked_user: User,
        mocker: MockerFixture,
    ) -> None:
        remote.add("PL1", "Mix", [])
        await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        spy = mocker.spy(mirror, "upsert_playlist")
        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        spy.assert_not_called()
        assert result.playlists[0].items == []

    async def test_duplicate_playlist_ids_in_listing_collapse(
        self,
        service: PlaylistSyncService,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a"])
        remote.playlists.append(RemotePlaylist("PL1", title="Mix again"))

        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert result.playlists_added == 1
        assert len(result.playlists) == 1

    async def test_items_without_id_and_duplicates_are_skipped(
        self,
        service: PlaylistSyncService,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a", None, "b", "a"])

        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert result.items_added == 2
        [playlist] = result.playlists
        assert [i.provider_item_id for i in playlist.items or []] == ["a", "b"]

    async def test_unresolvable_items_are_stored_without_details(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a"])
        await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        remote.items["PL1"] = ["a", "gone"]
        client.get_item_details.side_effect = None
        client.get_item_details.return_value = {}
        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert result.items_added == 1
        gone = result.playlists[0].items[1]  # type: ignore[index]
        assert gone.provider_item_id == "gone"
        assert gone.title is None
        assert gone.position == 1


class TestTokenRefresh:
    """401 handling: one refresh per run, then give up."""

    async def test_refreshes_once_and_retries(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        remote: FakeRemote,
        credential_repository: CredentialRepository,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a"])
        client.list_playlists.side_effect = [
            ProviderUnauthorizedError("expired", status_code=401),
            list(remote.playlists),
        ]

        result = await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert result.token_refreshed is True
        refresher.refresh_token.assert_awaited_once_with("refresh-1")
        assert client.list_playlists.await_args_list[1].args == ("access-2",)
        # every later call reuses the refreshed token
        assert client.list_playlist_items.await_args.args[0] == "access-2"

        stored = await credential_repository.get(linked_user.id, "youtube")
        assert stored is not None
        assert stored.access_token == "access-2"
        assert stored.refresh_token == "refresh-1"
        assert stored.expires_at is not None

    async def test_second_401_after_refresh_is_auth_expired(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        linked_user: User,
    ) -> None:
        client.list_playlists.side_effect = ProviderUnauthorizedError(
            "expired", status_code=401
        )

        with pytest.raises(AuthExpiredError) as exc_info:
            await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert "re-link" in exc_info.value.message
        assert refresher.refresh_token.await_count == 1
        assert client.list_playlists.await_count == 2

    async def test_server_error_after_refresh_is_auth_expired(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        linked_user: User,
    ) -> None:
        client.list_playlists.side_effect = [
            ProviderUnauthorizedError("expired", status_code=401),
            ProviderError(
                "youtube API error 500",
                status_code=500,
                payload={"error": "backendError"},
            ),
        ]

        with pytest.raises(AuthExpiredError) as exc_info:
            await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert refresher.refresh_token.await_count == 1
        assert client.list_playlists.await_count == 2
        assert isinstance(exc_info.value.__cause__, ProviderError)
        assert exc_info.value.__cause__.status_code == 500

    async def test_refresh_happens_at_most_once_per_run(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        remote: FakeRemote,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "Mix", ["a"])
        client.list_playlists.side_effect = [
            ProviderUnauthorizedError("expired", status_code=401),
            list(remote.playlists),
        ]
        client.list_playlist_items.side_effect = ProviderUnauthorizedError(
            "expired again", status_code=401
        )

        with pytest.raises(AuthExpiredError):
            await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert refresher.refresh_token.await_count == 1
        client.list_playlist_items.assert_awaited_once()

    async def test_no_refresh_token_is_auth_expired(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        credential_repository: CredentialRepository,
        user: User,
    ) -> None:
        await credential_repository.upsert(user.id, "youtube", "access-1")
        client.list_playlists.side_effect = ProviderUnauthorizedError(
            "expired", status_code=401
        )

        with pytest.raises(AuthExpiredError):
            await service.sync_playlists(user.id, Provider.YOUTUBE)

        refresher.refresh_token.assert_not_called()

    async def test_failed_refresh_is_auth_expired(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        credential_repository: CredentialRepository,
        linked_user: User,
    ) -> None:
        client.list_playlists.side_effect = ProviderUnauthorizedError(
            "expired", status_code=401
        )
        refresher.refresh_token.side_effect = RefreshError(
            "refresh failed", status_code=400, payload={"error": "invalid_grant"}
        )

        with pytest.raises(AuthExpiredError) as exc_info:
            await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert isinstance(exc_info.value.__cause__, RefreshError)
        stored = await credential_repository.get(linked_user.id, "youtube")
        assert stored is not None
        assert stored.access_token == "access-1"


class TestProviderFailures:
    """Non-auth failures surface unchanged and keep earlier work."""

    async def test_provider_error_is_not_retried(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        refresher: AsyncMock,
        linked_user: User,
    ) -> None:
        client.list_playlists.side_effect = ProviderError(
            "youtube API error 403",
            status_code=403,
            payload={"error": {"errors": [{"reason": "quotaExceeded"}]}},
        )

        with pytest.raises(ProviderError) as exc_info:
            await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        assert exc_info.value.status_code == 403
        assert client.list_playlists.await_count == 1
        refresher.refresh_token.assert_not_called()

    async def test_partial_progress_survives_a_failure(
        self,
        service: PlaylistSyncService,
        client: AsyncMock,
        remote: FakeRemote,
        mirror: PlaylistMirrorRepository,
        linked_user: User,
    ) -> None:
        remote.add("PL1", "First", ["a", "b"])
        remote.add("PL2", "Second", ["c"])

        async def fail_on_second(
            access_token: str, playlist_id: str, detailed: bool
        ) -> list[RemoteItem]:
            if playlist_id == "PL2":
                raise ProviderError("youtube API error 404", status_code=404)
            return await remote.list_playlist_items(access_token, playlist_id, detailed)

        client.list_playlist_items.side_effect = fail_on_second

        with pytest.raises(ProviderError):
            await service.sync_playlists(linked_user.id, Provider.YOUTUBE)

        playlists = await mirror.get_playlists_with_items(
            linked_user.id, Provider.YOUTUBE
        )
        assert len(playlists) == 2
        first = next(p for p in playlists if p.provider_playlist_id == "PL1")
        assert [i.provider_item_id for i in first.items or []] == ["a", "b"]
