"""
Spotify playlist service.

Reading public playlists works with the client-credentials token. Everything
under /me (user playlists, creating, editing) needs a user token set on the
SpotifyClient; without one those calls fail with 401 and are reported as
[] / None / False like any other backend failure.
"""

import logging

from tunesource.domain.models import Playlist, Song
from tunesource.domain.ports import IPlaylistService
from tunesource.infrastructure.integrations.spotify_client import SpotifyClient
from tunesource.infrastructure.sources.record_mapping import section_items
from tunesource.infrastructure.sources.spotify.mapping import (
    SPOTIFY_TRACK_URI,
    playlist_to_model,
    playlists_to_models,
    songs_from_playlist_items,
)
from tunesource.infrastructure.sources.spotify.settings import SpotifySourceSettings

logger = logging.getLogger(__name__)


class SpotifyPlaylistService(IPlaylistService):
    """Playlists through the Spotify Web API."""

    def __init__(self, client: SpotifyClient, settings: SpotifySourceSettings) -> None:
        self._client = client
        self._settings = settings

    async def load_playlist(self, playlist_id: str) -> Playlist | None:
        logger.debug(f"Loading Spotify playlist: {playlist_id}")
        try:
            data = await self._client.get_playlist(playlist_id)
            items = await self._client.get_playlist_tracks(playlist_id)
            playlist = playlist_to_model(data)
            if playlist is None:
                return None
            playlist.songs = songs_from_playlist_items(items, playlist_name=playlist.name)
        except Exception as e:
            logger.error(f"Error loading Spotify playlist {playlist_id}: {e}")
            return None

        logger.debug(f"Loaded playlist: {playlist.name} with {playlist.song_count} tracks")
        return playlist

    async def load_user_playlists(self) -> list[Playlist]:
        logger.debug("Loading user's Spotify playlists")
        try:
            items = await self._client.get_current_user_playlists()
            playlists = playlists_to_models(items)
        except Exception as e:
            logger.error(f"Error loading user's Spotify playlists: {e}")
            return []

        logger.debug(f"Loaded {len(playlists)} user playlists")
        return playlists

    async def save_playlist(self, playlist: Playlist) -> Playlist | None:
        """Create the playlist for the current user and add its songs."""
        logger.debug(f"Saving Spotify playlist: {playlist.name}")
        try:
            user = await self._client.get_current_user()
            created = await self._client.create_playlist(
                user["id"], playlist.name, playlist.description, playlist.is_public
            )
            saved = playlist_to_model(created)
            if saved is None:
                logger.error(f"Spotify returned no id for new playlist '{playlist.name}'")
                return None
            if playlist.songs:
                # The API accepts at most 100 URIs per request
                uris = [SPOTIFY_TRACK_URI.format(track_id=s.id) for s in playlist.songs]
                for start in range(0, len(uris), 100):
                    await self._client.add_tracks_to_playlist(saved.id, uris[start : start + 100])
        except Exception as e:
            logger.error(f"Error saving Spotify playlist '{playlist.name}': {e}")
            return None

        saved.songs = list(playlist.songs)
        saved.song_count = len(saved.songs)
        logger.debug(f"Created new playlist: {saved.name} with ID: {saved.id}")
        return saved

    async def delete_playlist(self, playlist_id: str) -> bool:
        # The Web API has no delete, owners can only unfollow
        logger.warning(
            "Playlist deletion not supported through Spotify API - "
            "user must delete through Spotify app"
        )
        return False

    async def add_song_to_playlist(self, playlist_id: str, song: Song) -> bool:
        logger.debug(f"Adding song {song.title} to Spotify playlist: {playlist_id}")
        try:
            await self._client.add_tracks_to_playlist(
                playlist_id, [SPOTIFY_TRACK_URI.format(track_id=song.id)]
            )
        except Exception as e:
            logger.error(f"Error adding song to Spotify playlist {playlist_id}: {e}")
            return False
        return True

    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> bool:
        logger.debug(f"Removing song {song_id} from Spotify playlist: {playlist_id}")
        try:
            await self._client.remove_tracks_from_playlist(
                playlist_id, [SPOTIFY_TRACK_URI.format(track_id=song_id)]
            )
        except Exception as e:
            logger.error(f"Error removing song from Spotify playlist {playlist_id}: {e}")
            return False
        return True

    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        logger.debug(f"Searching Spotify playlists for: {query}")
        limit = max(1, min(max_results, self._settings.max_search_results))
        try:
            response = await self._client.search(query, "playlist", limit)
            return playlists_to_models(section_items(response, "playlists"))
        except Exception as e:
            logger.error(f"Error searching Spotify playlists for query '{query}': {e}")
            return []

    async def get_playlist_songs(self, playlist_id: str) -> list[Song]:
        logger.debug(f"Getting songs from Spotify playlist: {playlist_id}")
        playlist = await self.load_playlist(playlist_id)
        if playlist is None:
            return []
        logger.debug(f"Retrieved {len(playlist.songs)} songs from playlist: {playlist.name}")
        return playlist.songs
