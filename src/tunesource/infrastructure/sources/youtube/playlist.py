"""
YouTube playlist service.

Hey future me – YouTube playlists live in TWO places:
1. The local store (Playlists/YouTube/<id>.json), the user's own playlists
   and a cache of remote ones.
2. YouTube itself, via the Data API v3 when an API key is configured, else
   via yt-dlp flat extraction.

load_playlist() checks local first, then remote, and caches what it finds.
Every public method is "never raise": failures are logged and reported as
None / False / [].
"""

import logging
import uuid
from typing import Any

from tunesource.domain.models import Playlist, Song
from tunesource.domain.ports import IPlaylistService
from tunesource.infrastructure.integrations.youtube_data_client import YouTubeDataClient
from tunesource.infrastructure.integrations.ytdlp_client import YOUTUBE_WATCH_URL, YtDlpClient
from tunesource.infrastructure.sources.playlist_store import LocalPlaylistStore
from tunesource.infrastructure.sources.record_mapping import map_records, to_int
from tunesource.infrastructure.sources.youtube.mapping import entry_to_playlist, entry_to_song
from tunesource.infrastructure.sources.youtube.settings import (
    YOUTUBE_SOURCE_NAME,
    YouTubeSourceSettings,
)

logger = logging.getLogger(__name__)

# Regular playlist ids are "PL" + 32 chars
YOUTUBE_PLAYLIST_ID_LENGTH = 34


def is_youtube_playlist_id(playlist_id: str) -> bool:
    """Check if an id looks like a real YouTube playlist (not a local uuid)."""
    return (
        playlist_id.startswith("PL")
        or playlist_id.startswith("FL")
        or len(playlist_id) == YOUTUBE_PLAYLIST_ID_LENGTH
    )


def _api_thumbnail(snippet: dict[str, Any]) -> str | None:
    thumbnails = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return str(url)
    return None


def _api_item_to_song(item: dict[str, Any]) -> Song | None:
    """Song of a playlistItems resource, None for deleted / private videos."""
    snippet = item.get("snippet") or {}
    video_id = (item.get("contentDetails") or {}).get("videoId") or (
        snippet.get("resourceId") or {}
    ).get("videoId")
    if not video_id:
        return None
    return Song(
        id=video_id,
        title=snippet.get("title") or "Unknown Title",
        artist=snippet.get("videoOwnerChannelTitle") or "Unknown Artist",
        thumbnail_url=_api_thumbnail(snippet),
        url=YOUTUBE_WATCH_URL.format(video_id=video_id),
        source=YOUTUBE_SOURCE_NAME,
    )


class YouTubePlaylistService(IPlaylistService):
    """Local playlist store with YouTube as the remote fallback."""

    def __init__(
        self,
        settings: YouTubeSourceSettings,
        store: LocalPlaylistStore,
        ytdlp: YtDlpClient,
        data_api: YouTubeDataClient | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._ytdlp = ytdlp
        self._data_api = data_api

    # =========================================================================
    # Remote fetching
    # =========================================================================

    async def _fetch_remote(self, playlist_id: str) -> Playlist | None:
        if self._data_api is not None and self._settings.use_data_api:
            playlist = await self._fetch_from_data_api(playlist_id)
            if playlist is not None:
                return playlist
        return await self._fetch_with_ytdlp(playlist_id)

    async def _fetch_from_data_api(self, playlist_id: str) -> Playlist | None:
        assert self._data_api is not None  # for mypy
        try:
            item = await self._data_api.get_playlist(playlist_id)
            if item is None:
                return None
            songs = await self._songs_from_data_api(playlist_id)

            snippet = item.get("snippet") or {}
            name = snippet.get("title") or "Unknown Playlist"
            for song in songs:
                song.playlist_name = name
            return Playlist(
                id=playlist_id,
                name=name,
                description=snippet.get("description") or "",
                thumbnail_url=_api_thumbnail(snippet),
                song_count=to_int((item.get("contentDetails") or {}).get("itemCount")) or len(songs),
                source=YOUTUBE_SOURCE_NAME,
                author=snippet.get("channelTitle"),
                songs=songs,
            )
        except Exception as e:
            logger.error(f"Failed to load playlist {playlist_id} from YouTube API: {e}")
            return None

    async def _songs_from_data_api(self, playlist_id: str) -> list[Song]:
        assert self._data_api is not None  # for mypy
        max_items = min(self._settings.max_playlist_items, self._settings.max_api_results)
        items = await self._data_api.get_playlist_items(playlist_id, max_items)
        return map_records(items, _api_item_to_song, "YouTube playlist item")

    async def _fetch_with_ytdlp(self, playlist_id: str) -> Playlist | None:
        try:
            info = await self._ytdlp.get_playlist(playlist_id, self._settings.max_playlist_items)
            if not info:
                return None
            playlist = entry_to_playlist({**info, "id": info.get("id") or playlist_id})
            if playlist is None:
                return None
            playlist.songs = map_records(
                info.get("entries"),
                lambda entry: entry_to_song(entry, playlist_name=playlist.name),
                "YouTube playlist entry",
            )
        except Exception as e:
            logger.error(f"Failed to load playlist {playlist_id} with yt-dlp: {e}")
            return None

        playlist.song_count = max(playlist.song_count, len(playlist.songs))
        return playlist

    async def _cache(self, playlist: Playlist) -> None:
        try:
            await self._store.save(playlist)
        except Exception as e:
            logger.warning(f"Could not cache playlist {playlist.id} locally: {e}")

    # =========================================================================
    # IPlaylistService
    # =========================================================================

    async def load_playlist(self, playlist_id: str) -> Playlist | None:
        logger.info(f"Loading YouTube playlist: {playlist_id}")
        try:
            local = await self._store.load(playlist_id)
            if local is not None:
                logger.info(f"Loaded playlist '{local.name}' from local storage")
                return local

            remote = await self._fetch_remote(playlist_id)
            if remote is not None:
                await self._cache(remote)
                return remote
        except Exception as e:
            logger.error(f"Error loading playlist {playlist_id}: {e}")
            return None

        logger.warning(f"Playlist {playlist_id} not found")
        return None

    async def load_user_playlists(self) -> list[Playlist]:
        # The Data API needs OAuth for a user's own playlists, API keys can't list them
        logger.info("Loading user's YouTube playlists")
        try:
            playlists = await self._store.load_all()
        except Exception as e:
            logger.error(f"Error loading user playlists: {e}")
            return []
        logger.info(f"Loaded {len(playlists)} user playlists")
        return playlists

    async def save_playlist(self, playlist: Playlist) -> Playlist | None:
        logger.info(f"Saving playlist: {playlist.name}")
        if not playlist.id:
            playlist.id = uuid.uuid4().hex
        playlist.source = YOUTUBE_SOURCE_NAME
        playlist.song_count = len(playlist.songs)

        try:
            await self._store.save(playlist)
        except Exception as e:
            logger.error(f"Error saving playlist {playlist.name}: {e}")
            return None

        logger.info(f"Playlist '{playlist.name}' saved successfully")
        return playlist

    async def delete_playlist(self, playlist_id: str) -> bool:
        logger.info(f"Deleting playlist: {playlist_id}")
        try:
            deleted = await self._store.delete(playlist_id)
        except Exception as e:
            logger.error(f"Error deleting playlist {playlist_id}: {e}")
            return False

        if not deleted:
            logger.warning(f"Playlist {playlist_id} not found for deletion")
        return deleted

    async def add_song_to_playlist(self, playlist_id: str, song: Song) -> bool:
        logger.info(f"Adding song '{song.title}' to playlist {playlist_id}")
        playlist = await self.load_playlist(playlist_id)
        if playlist is None:
            return False

        if any(existing.id == song.id for existing in playlist.songs):
            logger.debug(f"Song {song.id} already in playlist '{playlist.name}'")
            return True
        playlist.songs.append(song)
        return await self.save_playlist(playlist) is not None

    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> bool:
        logger.info(f"Removing song {song_id} from playlist {playlist_id}")
        playlist = await self.load_playlist(playlist_id)
        if playlist is None:
            return False

        remaining = [song for song in playlist.songs if song.id != song_id]
        if len(remaining) == len(playlist.songs):
            logger.warning(f"Song {song_id} not in playlist '{playlist.name}'")
            return False
        playlist.songs = remaining
        return await self.save_playlist(playlist) is not None

    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        logger.info(f"Searching YouTube playlists for: '{query}'")
        needle = query.lower()
        results: list[Playlist] = []

        try:
            local = await self._store.load_all()
            results.extend(
                p for p in local if needle in p.name.lower() or needle in p.description.lower()
            )
        except Exception as e:
            logger.error(f"Error searching local playlists for '{query}': {e}")

        if self._settings.include_playlists:
            try:
                entries = await self._ytdlp.search_playlists(query, max_results)
                results.extend(map_records(entries, entry_to_playlist, "YouTube playlist entry"))
            except Exception as e:
                logger.warning(f"Failed to search remote playlists for '{query}': {e}")

        unique: dict[str, Playlist] = {}
        for playlist in results:
            unique.setdefault(playlist.id, playlist)
        found = list(unique.values())[:max_results]
        logger.info(f"Found {len(found)} playlists for query '{query}'")
        return found

    async def get_playlist_songs(self, playlist_id: str) -> list[Song]:
        logger.info(f"Getting songs for playlist: {playlist_id}")
        playlist = await self.load_playlist(playlist_id)
        if playlist is None:
            return []

        if not playlist.songs and is_youtube_playlist_id(playlist_id):
            remote = await self._fetch_remote(playlist_id)
            if remote is not None and remote.songs:
                playlist.songs = remote.songs
                playlist.song_count = len(remote.songs)
                await self._cache(playlist)

        logger.info(f"Retrieved {len(playlist.songs)} songs from playlist '{playlist.name}'")
        return playlist.songs
