"""Spotify Web API client with client-credentials auth."""

import base64
import logging
import time
from typing import Any, cast

import httpx

from tunesource.domain.exceptions import ConfigurationError
from tunesource.infrastructure.integrations.http_pool import HttpClientPool
from tunesource.infrastructure.rate_limiter import get_spotify_limiter

logger = logging.getLogger(__name__)


class SpotifyClient:
    """HTTP client for Spotify Web API operations."""

    TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL, not a password
    API_BASE_URL = "https://api.spotify.com/v1"
    # Refresh a little before the real expiry so in-flight requests don't race it
    TOKEN_EXPIRY_MARGIN_SECONDS = 60

    # Hey future me, the init does NO network I/O. authenticate() is called by the provider
    # during initialize(), so a broken network only degrades the Spotify source instead of
    # blowing up the constructor.
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize Spotify client.

        Args:
            client_id: Spotify app client id
            client_secret: Spotify app client secret
            client: Optional httpx client, defaults to the shared pool
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self._client = client
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0
        self._user_token: str | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client()

    @property
    def is_authenticated(self) -> bool:
        """True while a non-expired app token is cached."""
        return self._access_token is not None and time.monotonic() < self._token_expires_at

    def set_user_token(self, access_token: str | None) -> None:
        """Set an OAuth user token for the /me endpoints.

        The client-credentials token can't read or modify user playlists. Without a
        user token those calls fail with 401 and the playlist service reports failure.
        """
        self._user_token = access_token

    # Listen up, this is the client-credentials flow: app id + secret in a Basic header,
    # no user involved. Tokens live for an hour, we cache them and refresh on demand.
    async def authenticate(self) -> str:
        """Fetch a fresh app access token.

        Returns:
            The access token

        Raises:
            ConfigurationError: If client id or secret are missing
            httpx.HTTPStatusError: If Spotify rejects the credentials
        """
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("Spotify client_id and client_secret must be configured")

        credentials = base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode()
        ).decode("ascii")

        client = await self._get_client()
        response = await client.post(
            self.TOKEN_URL,
            data={"grant_type": "client_credentials"},
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )
        response.raise_for_status()
        payload = cast(dict[str, Any], response.json())

        self._access_token = str(payload["access_token"])
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = (
            time.monotonic() + expires_in - self.TOKEN_EXPIRY_MARGIN_SECONDS
        )
        logger.info(f"Spotify client-credentials token acquired (expires in {expires_in}s)")
        return self._access_token

    async def _get_token(self, user_scope: bool) -> str:
        if user_scope and self._user_token:
            return self._user_token
        if not self.is_authenticated:
            await self.authenticate()
        assert self._access_token is not None  # for mypy
        return self._access_token

    # Hey future me - ALL Web API calls go through here! Token bucket first, then the
    # request, then 429 handling with Retry-After. A 401 on an app token means it expired
    # early (Spotify rotates keys), so we re-authenticate once and retry.
    async def _api_request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        user_scope: bool = False,
        max_retries: int = 3,
    ) -> httpx.Response:
        """Make rate-limited API request with automatic retry on 429.

        Returns:
            httpx.Response object (status not yet checked)

        Raises:
            httpx.HTTPStatusError: When still rate limited after max_retries
        """
        client = await self._get_client()
        rate_limiter = get_spotify_limiter()
        url = f"{self.API_BASE_URL}/{path.lstrip('/')}"
        reauthenticated = False

        for attempt in range(max_retries + 1):
            token = await self._get_token(user_scope)
            async with rate_limiter:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                    headers={"Authorization": f"Bearer {token}"},
                )

            if response.status_code == 401 and not reauthenticated and not (
                user_scope and self._user_token
            ):
                reauthenticated = True
                self._access_token = None
                logger.info("Spotify token rejected, re-authenticating")
                continue

            if response.status_code == 429:
                retry_after_str = response.headers.get("Retry-After")
                retry_after = int(retry_after_str) if retry_after_str else None

                if attempt >= max_retries:
                    error_msg = (
                        f"Spotify API rate limited (429) after {max_retries} retries. "
                        f"URL: {url}. Retry-After: {retry_after or 'not provided'} seconds."
                    )
                    logger.error(error_msg)
                    raise httpx.HTTPStatusError(
                        error_msg, request=response.request, response=response
                    )

                wait_time = await rate_limiter.back_off(retry_after)
                logger.warning(
                    f"Spotify 429 Rate Limit (attempt {attempt + 1}/{max_retries}): "
                    f"waited {wait_time:.1f}s, retrying {url}"
                )
                continue

            rate_limiter.record_success()
            return response

        return response

    async def _get_json(
        self, path: str, params: dict[str, Any] | None = None, user_scope: bool = False
    ) -> dict[str, Any]:
        response = await self._api_request("GET", path, params=params, user_scope=user_scope)
        response.raise_for_status()
        return cast(dict[str, Any], response.json())

    async def search(self, query: str, search_type: str = "track", limit: int = 20) -> dict[str, Any]:
        """
        Search the catalog.

        Args:
            query: Search query (supports Spotify operators like "artist:")
            search_type: Comma-separated types: track, artist, album, playlist
            limit: Results per type (Spotify caps at 50)

        Returns:
            Raw search response keyed by plural type ("tracks", "artists", ...)
        """
        return await self._get_json(
            "search",
            params={"q": query, "type": search_type, "limit": max(1, min(limit, 50))},
        )

    async def get_track(self, track_id: str) -> dict[str, Any]:
        """Get one track."""
        return await self._get_json(f"tracks/{track_id}")

    async def get_artist_top_tracks(self, artist_id: str, market: str = "US") -> list[dict[str, Any]]:
        """Get an artist's top tracks (up to 10) for a market."""
        result = await self._get_json(f"artists/{artist_id}/top-tracks", params={"market": market})
        return cast(list[dict[str, Any]], result.get("tracks", []))

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        """Get playlist details (first page of tracks included)."""
        return await self._get_json(f"playlists/{playlist_id}")

    # Yo, playlists page at 100 tracks. We follow offsets until "next" is null so big
    # playlists come back complete, not silently truncated at 100.
    async def get_playlist_tracks(self, playlist_id: str, max_items: int = 1000) -> list[dict[str, Any]]:
        """Get all playlist items (paged), up to max_items."""
        items: list[dict[str, Any]] = []
        offset = 0
        while len(items) < max_items:
            page = await self._get_json(
                f"playlists/{playlist_id}/tracks",
                params={"limit": 100, "offset": offset},
            )
            page_items = page.get("items") or []
            items.extend(page_items)
            if not page.get("next") or not page_items:
                break
            offset += len(page_items)
        return items[:max_items]

    async def get_current_user(self) -> dict[str, Any]:
        """Get the current user's profile (needs a user token)."""
        return await self._get_json("me", user_scope=True)

    async def get_current_user_playlists(self, limit: int = 50) -> list[dict[str, Any]]:
        """Get the current user's playlists (needs a user token)."""
        result = await self._get_json(
            "me/playlists", params={"limit": max(1, min(limit, 50))}, user_scope=True
        )
        return cast(list[dict[str, Any]], result.get("items", []))

    async def create_playlist(
        self, user_id: str, name: str, description: str = "", public: bool = True
    ) -> dict[str, Any]:
        """Create a playlist owned by user_id."""
        response = await self._api_request(
            "POST",
            f"users/{user_id}/playlists",
            json={"name": name, "description": description, "public": public},
            user_scope=True,
        )
        response.raise_for_status()
        return cast(dict[str, Any], response.json())

    async def add_tracks_to_playlist(self, playlist_id: str, uris: list[str]) -> None:
        """Add spotify:track URIs to a playlist."""
        response = await self._api_request(
            "POST", f"playlists/{playlist_id}/tracks", json={"uris": uris}, user_scope=True
        )
        response.raise_for_status()

    async def remove_tracks_from_playlist(self, playlist_id: str, uris: list[str]) -> None:
        """Remove spotify:track URIs from a playlist."""
        response = await self._api_request(
            "DELETE",
            f"playlists/{playlist_id}/tracks",
            json={"tracks": [{"uri": uri} for uri in uris]},
            user_scope=True,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Forget cached tokens. The shared HTTP pool is closed at shutdown."""
        self._access_token = None
        self._token_expires_at = 0.0
        self._user_token = None
