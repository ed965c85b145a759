"""Tests for SpotifyClient against an in-memory Spotify."""

import json
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import httpx
import pytest
from pytest_mock import MockerFixture

from tunesource.domain.exceptions import ConfigurationError
from tunesource.infrastructure.integrations.spotify_client import SpotifyClient
from tunesource.infrastructure.rate_limiter import RateLimiter, RateLimiterConfig


class FakeSpotify:
    """Answers token and Web API requests, records what it saw."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_requests = 0
        self.reject_credentials = False
        self.rate_limited_responses = 0
        self.expire_next_token = False
        self.retry_after: str | None = "0"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "accounts.spotify.com":
            self.token_requests += 1
            if self.reject_credentials:
                return httpx.Response(400, json={"error": "invalid_client"})
            return httpx.Response(
                200, json={"access_token": f"token-{self.token_requests}", "expires_in": 3600}
            )

        if self.rate_limited_responses > 0:
            self.rate_limited_responses -= 1
            headers = {"Retry-After": self.retry_after} if self.retry_after is not None else {}
            return httpx.Response(429, headers=headers)
        if self.expire_next_token:
            self.expire_next_token = False
            return httpx.Response(401, json={"error": {"status": 401}})

        path = request.url.path
        if path == "/v1/search":
            return httpx.Response(200, json={"tracks": {"items": [{"id": "t1", "name": "Song"}]}})
        if path.startswith("/v1/playlists/") and path.endswith("/tracks"):
            offset = int(request.url.params.get("offset", "0"))
            items = [{"track": {"id": f"t{offset + i}"}} for i in range(100 if offset == 0 else 20)]
            return httpx.Response(200, json={"items": items, "next": "more" if offset == 0 else None})
        if path == "/v1/tracks/missing":
            return httpx.Response(404, json={"error": {"status": 404}})
        return httpx.Response(200, json={"path": path})


@pytest.fixture(autouse=True)
def fast_limiter(mocker: MockerFixture) -> RateLimiter:
    """A roomy limiter so tests never wait for tokens."""
    limiter = RateLimiter(config=RateLimiterConfig(max_tokens=100, refill_rate=1000.0), name="test")
    mocker.patch(
        "tunesource.infrastructure.integrations.spotify_client.get_spotify_limiter",
        return_value=limiter,
    )
    return limiter


def recorded_waits(limiter: RateLimiter, mocker: MockerFixture) -> list[float]:
    """Seconds each back_off() call waited; sleeping itself is skipped."""
    mocker.patch("tunesource.infrastructure.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
    waits: list[float] = []
    back_off = limiter.back_off

    async def recording_back_off(retry_after: int | None = None) -> float:
        waited = await back_off(retry_after)
        waits.append(waited)
        return waited

    mocker.patch.object(limiter, "back_off", side_effect=recording_back_off)
    return waits


@pytest.fixture
def spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
async def client(spotify: FakeSpotify) -> AsyncIterator[SpotifyClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(spotify)) as http:
        yield SpotifyClient("client-id", "client-secret", client=http)


class TestAuthentication:
    """Test the client-credentials flow."""

    @pytest.mark.asyncio
    async def test_authenticate(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        token = await client.authenticate()

        assert token == "token-1"
        assert client.is_authenticated
        request = spotify.requests[0]
        assert request.headers["Authorization"].startswith("Basic ")
        assert request.content == b"grant_type=client_credentials"

    @pytest.mark.asyncio
    async def test_missing_credentials(self) -> None:
        with pytest.raises(ConfigurationError):
            await SpotifyClient("", "").authenticate()

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        spotify.reject_credentials = True

        with pytest.raises(httpx.HTTPStatusError):
            await client.authenticate()
        assert not client.is_authenticated

    @pytest.mark.asyncio
    async def test_token_is_reused(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        await client.search("a")
        await client.search("b")

        assert spotify.token_requests == 1

    @pytest.mark.asyncio
    async def test_rejected_token_is_refreshed_once(
        self, client: SpotifyClient, spotify: FakeSpotify
    ) -> None:
        await client.authenticate()
        spotify.expire_next_token = True

        await client.get_track("t1")

        assert spotify.token_requests == 2
        assert spotify.requests[-1].headers["Authorization"] == "Bearer token-2"

    @pytest.mark.asyncio
    async def test_close_forgets_tokens(self, client: SpotifyClient) -> None:
        await client.authenticate()
        await client.close()

        assert not client.is_authenticated


class TestApiRequests:
    """Test Web API calls."""

    @pytest.mark.asyncio
    async def test_search(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        result = await client.search("daft punk", "track", 500)

        assert result["tracks"]["items"][0]["id"] == "t1"
        request = spotify.requests[-1]
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.url.params["q"] == "daft punk"
        assert request.url.params["limit"] == "50"

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        """429 responses honour Retry-After and retry."""
        spotify.rate_limited_responses = 2

        result = await client.get_track("t1")

        assert result == {"path": "/v1/tracks/t1"}

    @pytest.mark.asyncio
    async def test_rate_limit_gives_up(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        spotify.rate_limited_responses = 10

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.get_track("t1")

        assert exc_info.value.response.status_code == 429

    @pytest.mark.asyncio
    async def test_backoff_grows_across_retries(
        self,
        client: SpotifyClient,
        spotify: FakeSpotify,
        fast_limiter: RateLimiter,
        mocker: MockerFixture,
    ) -> None:
        """Without Retry-After every further 429 doubles the wait."""
        waits = recorded_waits(fast_limiter, mocker)
        spotify.retry_after = None
        spotify.rate_limited_responses = 10

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_track("t1")

        assert waits == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_answered_request_resets_backoff(
        self,
        client: SpotifyClient,
        spotify: FakeSpotify,
        fast_limiter: RateLimiter,
        mocker: MockerFixture,
    ) -> None:
        waits = recorded_waits(fast_limiter, mocker)
        spotify.retry_after = None

        spotify.rate_limited_responses = 2
        await client.get_track("t1")
        spotify.rate_limited_responses = 1
        await client.get_track("t1")

        assert waits == [1.0, 2.0, 1.0]

    @pytest.mark.asyncio
    async def test_not_found_raises(self, client: SpotifyClient) -> None:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.get_track("missing")

        assert exc_info.value.response.status_code == 404

    @pytest.mark.asyncio
    async def test_playlist_tracks_follow_pages(self, client: SpotifyClient) -> None:
        items = await client.get_playlist_tracks("pl")

        assert len(items) == 120
        assert items[100]["track"]["id"] == "t100"

    @pytest.mark.asyncio
    async def test_playlist_tracks_capped(self, client: SpotifyClient) -> None:
        assert len(await client.get_playlist_tracks("pl", max_items=50)) == 50

    @pytest.mark.asyncio
    async def test_user_token_used_for_me_endpoints(
        self, client: SpotifyClient, spotify: FakeSpotify
    ) -> None:
        client.set_user_token("user-token")

        await client.get_current_user()

        assert spotify.requests[-1].headers["Authorization"] == "Bearer user-token"
        assert spotify.token_requests == 0

    @pytest.mark.asyncio
    async def test_remove_tracks_payload(self, client: SpotifyClient, spotify: FakeSpotify) -> None:
        client.set_user_token("user-token")

        await client.remove_tracks_from_playlist("pl", ["spotify:track:a"])

        request = spotify.requests[-1]
        assert request.method == "DELETE"
        assert json.loads(request.content) == {"tracks": [{"uri": "spotify:track:a"}]}
