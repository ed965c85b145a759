"""Search capability port."""

from abc import ABC, abstractmethod

from tunesource.domain.models import Playlist, Song


class ISearchService(ABC):
    """
    Search a backend's catalog.

    Hey future me – search is BEST EFFORT! Implementations catch backend errors,
    log them, and return []. An exception escaping from here would kill the
    aggregated multi-source search just because one backend is down.
    """

    @abstractmethod
    async def search(self, query: str, max_results: int = 50) -> list[Song]:
        """Search songs matching a free-text query.

        Args:
            query: Search query
            max_results: Maximum number of songs to return

        Returns:
            Matching songs, [] on backend error
        """
        ...

    @abstractmethod
    async def search_by_artist(self, artist: str, max_results: int = 50) -> list[Song]:
        """Search songs by an artist name."""
        ...

    @abstractmethod
    async def search_by_playlist(self, playlist_id: str) -> list[Song]:
        """Return the songs of a remote playlist, [] on error."""
        ...

    @abstractmethod
    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        """Search playlists matching a query, [] on error."""
        ...
