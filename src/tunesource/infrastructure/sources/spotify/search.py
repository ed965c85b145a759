"""Spotify search service (Web API catalog search)."""

import logging

from tunesource.domain.models import Playlist, Song
from tunesource.domain.ports import ISearchService
from tunesource.infrastructure.integrations.spotify_client import SpotifyClient
from tunesource.infrastructure.sources.record_mapping import section_items
from tunesource.infrastructure.sources.spotify.mapping import (
    playlists_to_models,
    songs_from_playlist_items,
    tracks_to_songs,
)
from tunesource.infrastructure.sources.spotify.settings import SpotifySourceSettings

logger = logging.getLogger(__name__)


class SpotifySearchService(ISearchService):
    """Track, artist and playlist search against the Spotify catalog."""

    def __init__(self, client: SpotifyClient, settings: SpotifySourceSettings) -> None:
        self._client = client
        self._settings = settings

    def _limit(self, max_results: int) -> int:
        return max(1, min(max_results, self._settings.max_search_results))

    # Hey future me, the mapping stays INSIDE the try. A response with an unexpected shape
    # ends up as [] like a network error. Single bad items are dropped in tracks_to_songs().
    async def search(self, query: str, max_results: int = 50) -> list[Song]:
        logger.debug(f"Searching Spotify for: {query}")
        try:
            response = await self._client.search(query, "track", self._limit(max_results))
            songs = tracks_to_songs(section_items(response, "tracks"))
        except Exception as e:
            logger.error(f"Error searching Spotify for query '{query}': {e}")
            return []

        logger.debug(f"Found {len(songs)} tracks for query: {query}")
        return songs

    # Yo, artist search is two calls: find the artist, then ask for their top tracks.
    # Top tracks are market-dependent, hence settings.market.
    async def search_by_artist(self, artist: str, max_results: int = 50) -> list[Song]:
        logger.debug(f"Searching Spotify for artist: {artist}")
        try:
            response = await self._client.search(artist, "artist", 1)
            artists = section_items(response, "artists") or []
            if not artists:
                logger.warning(f"Artist not found: {artist}")
                return []
            tracks = await self._client.get_artist_top_tracks(artists[0]["id"], self._settings.market)
            songs = tracks_to_songs(tracks)[:max_results]
        except Exception as e:
            logger.error(f"Error searching Spotify for artist '{artist}': {e}")
            return []

        logger.debug(f"Found {len(songs)} tracks for artist: {artist}")
        return songs

    async def search_by_playlist(self, playlist_id: str) -> list[Song]:
        logger.debug(f"Searching Spotify playlist: {playlist_id}")
        try:
            playlist = await self._client.get_playlist(playlist_id)
            items = await self._client.get_playlist_tracks(playlist_id)
            name = playlist.get("name") or "Unknown Playlist"
            songs = songs_from_playlist_items(items, playlist_name=name)
        except Exception as e:
            logger.error(f"Error searching Spotify playlist {playlist_id}: {e}")
            return []

        logger.debug(f"Found {len(songs)} tracks in playlist: {name}")
        return songs

    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        if not self._settings.include_playlists:
            logger.debug("Playlist search disabled in Spotify settings")
            return []

        logger.debug(f"Searching Spotify playlists for: {query}")
        try:
            response = await self._client.search(query, "playlist", self._limit(max_results))
            # Spotify returns null entries for playlists it can't show
            playlists = playlists_to_models(section_items(response, "playlists"))
        except Exception as e:
            logger.error(f"Error searching Spotify playlists for query '{query}': {e}")
            return []

        logger.debug(f"Found {len(playlists)} playlists for query: {query}")
        return playlists
