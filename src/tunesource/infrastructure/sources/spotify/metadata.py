"""Spotify metadata service.

Spotify never hands out audio URLs. The only "stream" of a track is the
pseudo URI spotify:track:<id>, which the download service resolves through
the yt-dlp subprocess.
"""

import logging

import httpx

from tunesource.domain.exceptions import EntityNotFoundException
from tunesource.domain.models import AudioStreamInfo, Song
from tunesource.domain.ports import IMetadataService, SourceError
from tunesource.infrastructure.integrations.spotify_client import SpotifyClient
from tunesource.infrastructure.sources.spotify.mapping import SPOTIFY_TRACK_URI, track_to_song
from tunesource.infrastructure.sources.spotify.settings import (
    SPOTIFY_SOURCE_NAME,
    SpotifySourceSettings,
)

logger = logging.getLogger(__name__)

# What the subprocess path produces
SPOTIFY_STREAM_EXTENSION = "mp3"


class SpotifyMetadataService(IMetadataService):
    """Track metadata and the single pseudo stream per track."""

    def __init__(self, client: SpotifyClient, settings: SpotifySourceSettings) -> None:
        self._client = client
        self._settings = settings

    async def get_song_metadata(self, song_id: str) -> Song:
        logger.debug(f"Getting Spotify metadata for track: {song_id}")
        try:
            track = await self._client.get_track(song_id)
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (400, 404):
                raise EntityNotFoundException("Song", song_id) from e
            raise SourceError(
                message=f"Failed to get track {song_id}: {e}",
                source=SPOTIFY_SOURCE_NAME,
                error_code=str(e.response.status_code),
                original_error=e,
                recoverable=e.response.status_code >= 500 or e.response.status_code == 429,
            ) from e
        except httpx.HTTPError as e:
            raise SourceError(
                message=f"Failed to get track {song_id}: {e}",
                source=SPOTIFY_SOURCE_NAME,
                error_code="http_error",
                original_error=e,
                recoverable=True,
            ) from e

        song = track_to_song(track)
        if song is None:
            raise EntityNotFoundException("Song", song_id)
        return song

    async def get_audio_streams(self, song_id: str) -> list[AudioStreamInfo]:
        bitrate = int(self._settings.preferred_quality)
        return [
            AudioStreamInfo(
                url=SPOTIFY_TRACK_URI.format(track_id=song_id),
                bitrate=bitrate,
                extension=SPOTIFY_STREAM_EXTENSION,
                format_id=f"spotify-{bitrate}",
            )
        ]

    async def get_best_audio_stream(self, song_id: str) -> AudioStreamInfo:
        streams = await self.get_audio_streams(song_id)
        return streams[0]
