"""Playlist capability port."""

from abc import ABC, abstractmethod

from tunesource.domain.models import Playlist, Song


class IPlaylistService(ABC):
    """
    CRUD-shaped playlist operations.

    Hey future me – every method here is independently fallible and NEVER raises
    for backend failures. A backend that can't do something (Spotify can't delete
    playlists via its API) logs a warning and returns False / [] / None.
    """

    @abstractmethod
    async def load_playlist(self, playlist_id: str) -> Playlist | None:
        """Load a playlist with its songs, None if not found."""
        ...

    @abstractmethod
    async def load_user_playlists(self) -> list[Playlist]:
        """Load all playlists of the current user."""
        ...

    @abstractmethod
    async def save_playlist(self, playlist: Playlist) -> Playlist | None:
        """Create or update a playlist.

        Returns:
            The saved playlist (with its new id if it was created), None on failure
        """
        ...

    @abstractmethod
    async def delete_playlist(self, playlist_id: str) -> bool:
        """Delete a playlist, False if unsupported or failed."""
        ...

    @abstractmethod
    async def add_song_to_playlist(self, playlist_id: str, song: Song) -> bool:
        """Append a song to a playlist."""
        ...

    @abstractmethod
    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> bool:
        """Remove a song from a playlist."""
        ...

    @abstractmethod
    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        """Search playlists by query."""
        ...

    @abstractmethod
    async def get_playlist_songs(self, playlist_id: str) -> list[Song]:
        """List the songs of a playlist."""
        ...
