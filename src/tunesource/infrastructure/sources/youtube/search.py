"""YouTube search service backed by the yt_dlp library."""

import asyncio
import logging
from typing import Any

from tunesource.domain.models import Playlist, Song
from tunesource.domain.ports import ISearchService
from tunesource.infrastructure.integrations.ytdlp_client import YtDlpClient
from tunesource.infrastructure.sources.record_mapping import map_records
from tunesource.infrastructure.sources.youtube.mapping import entry_to_playlist, entry_to_song
from tunesource.infrastructure.sources.youtube.settings import (
    YouTubeSearchType,
    YouTubeSourceSettings,
)

logger = logging.getLogger(__name__)


class YouTubeSearchService(ISearchService):
    """Search YouTube videos, YouTube Music songs and playlists.

    Every method logs backend failures and returns [], a dead search must
    never take the UI down with it.
    """

    def __init__(self, client: YtDlpClient, settings: YouTubeSourceSettings) -> None:
        self._client = client
        self._settings = settings

    # Hey future me, the " music" suffix is intentional! Plain YouTube search for
    # "daft punk around the world" returns reaction videos and tutorials first,
    # the suffix tilts the ranking towards actual songs.
    async def search(self, query: str, max_results: int = 50) -> list[Song]:
        if max_results <= 0:
            max_results = self._settings.max_api_results
        enhanced_query = f"{query} music"
        logger.info(f"Starting YouTube search for: '{query}' (max results: {max_results})")

        try:
            entries = await self._search_entries(enhanced_query, max_results)
            songs = self._to_songs(entries)[:max_results]
        except Exception as e:
            logger.error(f"YouTube search failed for query '{query}': {e}")
            return []

        logger.info(f"YouTube search completed: Found {len(songs)} songs for query '{query}'")
        return songs

    async def _search_entries(self, query: str, limit: int) -> list[dict[str, Any]]:
        search_type = self._settings.search_type
        if search_type == YouTubeSearchType.VIDEO:
            return await self._client.search_videos(query, limit)
        if search_type == YouTubeSearchType.MUSIC:
            return await self._client.search_music(query, limit)

        # BOTH: music results first, then videos; duplicates are dropped in _to_songs
        music, videos = await asyncio.gather(
            self._client.search_music(query, limit),
            self._client.search_videos(query, limit),
        )
        return [*_as_list(music), *_as_list(videos)]

    @staticmethod
    def _to_songs(entries: Any, playlist_name: str | None = None) -> list[Song]:
        """Songs of raw entries, first occurrence of each id wins."""
        mapped = map_records(
            entries, lambda entry: entry_to_song(entry, playlist_name=playlist_name), "YouTube entry"
        )
        songs: list[Song] = []
        seen: set[str] = set()
        for song in mapped:
            if song.id in seen:
                continue
            seen.add(song.id)
            songs.append(song)
        return songs

    async def search_by_artist(self, artist: str, max_results: int = 50) -> list[Song]:
        logger.info(f"Starting YouTube artist search for: '{artist}'")
        return await self.search(f"artist:{artist}", max_results)

    async def search_by_playlist(self, playlist_id: str) -> list[Song]:
        logger.info(f"Starting YouTube playlist search for playlist ID: {playlist_id}")
        try:
            info = await self._client.get_playlist(playlist_id, self._settings.max_playlist_items)
            if not info:
                logger.warning(f"YouTube playlist {playlist_id} not found")
                return []
            title = info.get("title")
            songs = self._to_songs(info.get("entries"), playlist_name=title)
        except Exception as e:
            logger.error(f"YouTube playlist search failed for playlist ID {playlist_id}: {e}")
            return []

        logger.info(
            f"YouTube playlist search completed: Found {len(songs)} songs in playlist '{title}'"
        )
        return songs

    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        if not self._settings.include_playlists:
            logger.debug("Playlist search disabled in YouTube settings")
            return []

        logger.info(f"Starting YouTube playlist search for: '{query}'")
        try:
            entries = await self._client.search_playlists(query, max_results)
            playlists = map_records(entries, entry_to_playlist, "YouTube playlist entry")
        except Exception as e:
            logger.error(f"YouTube playlist search failed for query '{query}': {e}")
            return []

        logger.info(
            f"YouTube playlist search completed: Found {len(playlists)} playlists for query '{query}'"
        )
        return playlists[:max_results]


def _as_list(entries: Any) -> list[Any]:
    return entries if isinstance(entries, list) else []
