"""YouTube Data API v3 client (playlists only).

Only used when the YouTube settings carry an API key and enable_youtube_api is
on. Without a key the playlist service falls back to yt-dlp flat extraction.
"""

import logging
from typing import Any, cast

import httpx

from tunesource.infrastructure.integrations.http_pool import HttpClientPool
from tunesource.infrastructure.rate_limiter import get_youtube_data_limiter

logger = logging.getLogger(__name__)


class YouTubeDataClient:
    """Minimal async client for the playlists/playlistItems endpoints."""

    API_BASE_URL = "https://www.googleapis.com/youtube/v3"
    # The API refuses maxResults above 50
    PAGE_SIZE = 50

    def __init__(self, api_key: str, client: httpx.AsyncClient | None = None) -> None:
        """
        Args:
            api_key: YouTube Data API key
            client: Optional httpx client, defaults to the shared pool
        """
        self.api_key = api_key
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client()

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        limiter = get_youtube_data_limiter()
        async with limiter:
            response = await client.get(
                f"{self.API_BASE_URL}/{path}",
                params={**params, "key": self.api_key},
            )
        # No retry here, a 429 only slows down the requests that follow
        if response.status_code == 429:
            await limiter.back_off()
        else:
            limiter.record_success()
        response.raise_for_status()
        return cast(dict[str, Any], response.json())

    async def get_playlist(self, playlist_id: str) -> dict[str, Any] | None:
        """Fetch playlist snippet + contentDetails, None if unknown.

        Raises:
            httpx.HTTPError: If the request fails
        """
        data = await self._get(
            "playlists",
            {"part": "snippet,contentDetails", "id": playlist_id},
        )
        items = data.get("items") or []
        return cast(dict[str, Any], items[0]) if items else None

    # Hey future me, playlistItems is paginated with nextPageToken. We keep paging until
    # max_items is reached or the token disappears. Deleted/private videos come back as
    # items without a videoId in contentDetails, the caller filters those.
    async def get_playlist_items(self, playlist_id: str, max_items: int) -> list[dict[str, Any]]:
        """Fetch up to max_items playlist items across pages.

        Raises:
            httpx.HTTPError: If a request fails
        """
        items: list[dict[str, Any]] = []
        page_token: str | None = None
        while len(items) < max_items:
            params: dict[str, Any] = {
                "part": "snippet,contentDetails",
                "playlistId": playlist_id,
                "maxResults": min(self.PAGE_SIZE, max_items - len(items)),
            }
            if page_token:
                params["pageToken"] = page_token
            data = await self._get("playlistItems", params)
            items.extend(data.get("items") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        return items[:max_items]
