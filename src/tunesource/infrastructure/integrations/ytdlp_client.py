"""yt-dlp library client for YouTube search and metadata.

Hey future me - yt_dlp.YoutubeDL is BLOCKING (it does its own HTTP with urllib).
Every call runs in a worker thread via asyncio.to_thread so the event loop keeps
serving downloads while a search is in flight. A fresh YoutubeDL per call keeps
options from leaking between searches and flat playlist listings.
"""

import asyncio
import logging
from typing import Any, cast
from urllib.parse import quote_plus

import yt_dlp
from yt_dlp.utils import DownloadError

from tunesource.domain.ports.source import SourceError

logger = logging.getLogger(__name__)

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
YOUTUBE_PLAYLIST_URL = "https://www.youtube.com/playlist?list={playlist_id}"
YOUTUBE_MUSIC_SEARCH_URL = "https://music.youtube.com/search?q={query}#songs"
# "sp=EgIQAw%3D%3D" is YouTube's own results filter for playlists
YOUTUBE_PLAYLIST_SEARCH_URL = "https://www.youtube.com/results?search_query={query}&sp=EgIQAw%3D%3D"


class YtDlpClient:
    """Async facade over the yt_dlp library."""

    def __init__(
        self,
        user_agent: str | None = None,
        socket_timeout: int = 30,
        retries: int = 3,
        verbose: bool = False,
    ) -> None:
        self._base_opts: dict[str, Any] = {
            "quiet": not verbose,
            "no_warnings": not verbose,
            "skip_download": True,
            "socket_timeout": socket_timeout,
            "retries": retries,
        }
        if user_agent:
            self._base_opts["http_headers"] = {"User-Agent": user_agent}

    def _extract_blocking(self, url: str, opts: dict[str, Any]) -> dict[str, Any] | None:
        with yt_dlp.YoutubeDL(cast(Any, {**self._base_opts, **opts})) as ydl:
            info = ydl.extract_info(url, download=False)
            if info is None:
                return None
            return cast(dict[str, Any], ydl.sanitize_info(info))

    async def _extract(self, url: str, opts: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return await asyncio.to_thread(self._extract_blocking, url, opts)
        except DownloadError as e:
            raise SourceError(
                message=str(e),
                source="YouTube",
                error_code="yt_dlp_download_error",
                original_error=e,
                recoverable=True,
            ) from e

    async def search_videos(self, query: str, limit: int) -> list[dict[str, Any]]:
        """Search YouTube videos (flat entries, no stream formats)."""
        info = await self._extract(f"ytsearch{limit}:{query}", {"extract_flat": "in_playlist"})
        return _entries(info)[:limit]

    async def search_music(self, query: str, limit: int) -> list[dict[str, Any]]:
        """Search YouTube Music songs (flat entries)."""
        url = YOUTUBE_MUSIC_SEARCH_URL.format(query=quote_plus(query))
        info = await self._extract(url, {"extract_flat": "in_playlist", "playlistend": limit})
        return _entries(info)[:limit]

    async def search_playlists(self, query: str, limit: int) -> list[dict[str, Any]]:
        """Search YouTube playlists (flat entries)."""
        url = YOUTUBE_PLAYLIST_SEARCH_URL.format(query=quote_plus(query))
        info = await self._extract(url, {"extract_flat": True, "playlistend": limit})
        return _entries(info)[:limit]

    async def get_playlist(self, playlist_id: str, max_items: int) -> dict[str, Any] | None:
        """Fetch a playlist with flat entries, capped at max_items."""
        url = YOUTUBE_PLAYLIST_URL.format(playlist_id=playlist_id)
        return await self._extract(url, {"extract_flat": "in_playlist", "playlistend": max_items})

    async def get_video(self, video_id: str) -> dict[str, Any] | None:
        """Fetch full video info including the stream formats."""
        url = YOUTUBE_WATCH_URL.format(video_id=video_id)
        return await self._extract(url, {"noplaylist": True})


def _entries(info: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not info:
        return []
    return [entry for entry in info.get("entries") or [] if entry]


__all__ = [
    "YOUTUBE_PLAYLIST_URL",
    "YOUTUBE_WATCH_URL",
    "YtDlpClient",
]
