"""YouTube metadata service: full yt-dlp extraction of one video."""

import logging
import time
from typing import Any

from tunesource.domain.exceptions import EntityNotFoundException
from tunesource.domain.models import AudioStreamInfo, Song
from tunesource.domain.ports import IMetadataService
from tunesource.infrastructure.integrations.ytdlp_client import YtDlpClient
from tunesource.infrastructure.sources.record_mapping import map_records
from tunesource.infrastructure.sources.youtube.mapping import (
    entry_to_song,
    format_to_stream,
    pick_best_stream,
)

logger = logging.getLogger(__name__)


class YouTubeMetadataService(IMetadataService):
    """Song metadata and audio stream candidates for YouTube videos."""

    def __init__(self, client: YtDlpClient) -> None:
        self._client = client

    async def _fetch(self, song_id: str) -> dict[str, Any]:
        # SourceError from the client propagates: targeted lookups raise
        info = await self._client.get_video(song_id)
        if not info:
            raise EntityNotFoundException("Song", song_id)
        return info

    async def get_song_metadata(self, song_id: str) -> Song:
        started = time.perf_counter()
        logger.info(f"Getting metadata for song ID: {song_id}")

        song = entry_to_song(await self._fetch(song_id))
        if song is None:
            raise EntityNotFoundException("Song", song_id)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Retrieved metadata for song: {song.title} by {song.artist} in {elapsed_ms:.0f}ms")
        return song

    async def get_audio_streams(self, song_id: str) -> list[AudioStreamInfo]:
        started = time.perf_counter()
        logger.info(f"Getting audio streams for song ID: {song_id}")

        info = await self._fetch(song_id)
        streams = map_records(info.get("formats"), format_to_stream, "YouTube format")

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Found {len(streams)} audio streams for song ID: {song_id} in {elapsed_ms:.0f}ms")
        return streams

    async def get_best_audio_stream(self, song_id: str) -> AudioStreamInfo:
        logger.info(f"Getting best audio stream for song ID: {song_id}")
        best = pick_best_stream(await self.get_audio_streams(song_id))
        if best is None:
            logger.error(f"No audio streams found for song ID: {song_id}")
            raise EntityNotFoundException("AudioStream", song_id)

        logger.info(
            f"Selected best audio stream for {song_id}: {best.format_id} "
            f"{best.extension} {best.bitrate}kbps"
        )
        return best
