"""Metadata capability port."""

from abc import ABC, abstractmethod

from tunesource.domain.models import AudioStreamInfo, Song


class IMetadataService(ABC):
    """
    Targeted lookups for one song.

    Unlike search, these are NOT best effort: the caller asked for one specific
    song, so an unresolvable id raises EntityNotFoundException (or SourceError
    for transport failures) instead of returning an empty value.
    """

    @abstractmethod
    async def get_song_metadata(self, song_id: str) -> Song:
        """Fetch full metadata for a song.

        Raises:
            EntityNotFoundException: If the id cannot be resolved
            SourceError: If the backend could not be reached
        """
        ...

    @abstractmethod
    async def get_audio_streams(self, song_id: str) -> list[AudioStreamInfo]:
        """List every stream candidate for a song."""
        ...

    @abstractmethod
    async def get_best_audio_stream(self, song_id: str) -> AudioStreamInfo:
        """Pick the best stream using the backend's own ranking.

        Ties are broken by stream list order (first wins).

        Raises:
            EntityNotFoundException: If the song has no streams
        """
        ...
