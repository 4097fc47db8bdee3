"""Tests for SpotifyClient against mocked HTTP (pytest-httpx)."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime

import httpx
import pytest
from pytest_httpx import HTTPXMock

from multitune.domain.exceptions import ProviderError, ProviderUnauthorizedError
from multitune.infrastructure.integrations import SpotifyClient

API = "https://api.spotify.com/v1"


@pytest.fixture
async def client() -> AsyncIterator[SpotifyClient]:
    async with SpotifyClient() as client:
        yield client


def _track(track_id: str, name: str) -> dict:
    return {
        "id": track_id,
        "name": name,
        "artists": [{"id": "artist-1", "name": "Artist"}, {"id": "x", "name": "Guest"}],
        "album": {
            "release_date": "2001-05",
            "release_date_precision": "month",
            "images": [{"url": "https://i.scdn.co/cover.jpg"}],
        },
    }


class TestListPlaylists:
    """Test playlist listing and next-URL pagination."""

    async def test_follows_absolute_next_url(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        next_url = f"{API}/me/playlists?offset=50&limit=50"
        httpx_mock.add_response(
            url=httpx.URL(f"{API}/me/playlists", params={"limit": "50"}),
            json={
                "items": [
                    {
                        "id": "sp1",
                        "name": "Daily",
                        "description": "",
                        "images": [{"url": "https://mosaic.scdn.co/1.jpg"}],
                    }
                ],
                "next": next_url,
            },
        )
        httpx_mock.add_response(
            url=next_url,
            json={"items": [{"id": "sp2", "name": "Weekly", "images": None}], "next": None},
        )

        playlists = await client.list_playlists("token")

        assert [p.provider_playlist_id for p in playlists] == ["sp1", "sp2"]
        assert playlists[0].thumbnail_url == "https://mosaic.scdn.co/1.jpg"
        assert playlists[1].thumbnail_url is None
        # the next URL is used verbatim, our params aren't appended twice
        assert str(httpx_mock.get_requests()[1].url) == next_url


class TestListPlaylistItems:
    """Test track listings."""

    async def test_detailed_listing_maps_first_artist_and_album(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=httpx.URL(f"{API}/playlists/sp1/tracks", params={"limit": "50"}),
            json={
                "items": [
                    {"is_local": False, "track": _track("t1", "First")},
                    {"is_local": True, "track": {"id": None, "name": "my.mp3"}},
                    {"is_local": False, "track": None},
                    {"is_local": False, "track": _track("t2", "Second")},
                ],
                "next": None,
            },
        )

        items = await client.list_playlist_items("token", "sp1", detailed=True)

        assert [i.provider_item_id for i in items] == ["t1", None, None, "t2"]
        assert [i.position for i in items] == [0, 1, 2, 3]
        details = items[0].details
        assert details is not None
        assert details.title == "First"
        assert details.channel_title == "Artist"
        assert details.channel_id == "artist-1"
        assert details.description is None
        assert details.published_at == datetime(2001, 5, 1, tzinfo=UTC)
        assert details.thumbnail_url == "https://i.scdn.co/cover.jpg"

    async def test_reference_listing_uses_field_filter(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=httpx.URL(
                f"{API}/playlists/sp1/tracks",
                params={"limit": "50", "fields": "items(is_local,track(id)),next"},
            ),
            json={"items": [{"is_local": False, "track": {"id": "t1"}}], "next": None},
        )

        [item] = await client.list_playlist_items("token", "sp1", detailed=False)

        assert item.provider_item_id == "t1"
        assert item.details is None


class TestGetItemDetails:
    """Test batched tracks lookups."""

    async def test_null_slots_are_skipped(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=httpx.URL(f"{API}/tracks", params={"ids": "t1,gone"}),
            json={"tracks": [_track("t1", "First"), None]},
        )

        details = await client.get_item_details("token", ["t1", "gone"])

        assert list(details) == ["t1"]
        assert details["t1"].title == "First"

    async def test_batches_ids_in_chunks_of_fifty(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        def tracks(request: httpx.Request) -> httpx.Response:
            ids = request.url.params["ids"].split(",")
            return httpx.Response(200, json={"tracks": [_track(i, i) for i in ids]})

        for _ in range(2):
            httpx_mock.add_callback(tracks)

        details = await client.get_item_details("token", [f"t{n}" for n in range(51)])

        sizes = [len(r.url.params["ids"].split(",")) for r in httpx_mock.get_requests()]
        assert sizes == [50, 1]
        assert len(details) == 51


class TestErrorsAndProfile:
    """Test error mapping and the /me profile."""

    async def test_401_is_unauthorized(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            status_code=401,
            json={"error": {"status": 401, "message": "The access token expired"}},
        )

        with pytest.raises(ProviderUnauthorizedError):
            await client.list_playlists("expired")

    async def test_rate_limit_is_provider_error(
        self, client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        body = {"error": {"status": 429, "message": "API rate limit exceeded"}}
        httpx_mock.add_response(status_code=429, json=body)

        with pytest.raises(ProviderError) as exc_info:
            await client.list_playlist_items("token", "sp1", detailed=True)

        assert exc_info.value.status_code == 429
        assert exc_info.value.payload == body

    async def test_profile(self, client: SpotifyClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{API}/me",
            json={"id": "spotify-user", "display_name": "DJ", "email": None},
        )

        profile = await client.get_profile("token")

        assert profile.provider == "spotify"
        assert profile.account_id == "spotify-user"
        assert profile.display_name == "DJ"
        assert profile.email is None
