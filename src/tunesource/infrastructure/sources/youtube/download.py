"""
YouTube download service: direct HTTP streaming of the selected format.

Hey future me – YouTube format URLs are plain (signed) HTTPS URLs, so no
subprocess is needed here. We stream the response into a fresh temp file in
8 KiB chunks and report progress every 64 KiB.

Failure contract (callers depend on it!):
- FAILED event, temp file deleted, return None. Never a half-written file.
- Cancellation: same cleanup, then CancelledError propagates.
"""

import asyncio
import logging
import os
import tempfile
import time
from pathlib import Path

import httpx

from tunesource.config import DownloadSettings
from tunesource.domain.exceptions import InvalidStateException
from tunesource.domain.models import AudioStreamInfo, ProgressCallback, Song
from tunesource.domain.ports import AudioStream, IDownloadService, SourceError
from tunesource.infrastructure.integrations.http_pool import HttpClientPool
from tunesource.infrastructure.sources.progress import ProgressReporter
from tunesource.infrastructure.sources.single_flight import SingleFlight
from tunesource.infrastructure.sources.streams import HttpAudioStream
from tunesource.infrastructure.sources.youtube.settings import (
    YOUTUBE_SOURCE_NAME,
    YouTubeSourceSettings,
)

logger = logging.getLogger(__name__)

# Formats a decoder can play straight from the HTTP response
DIRECT_STREAMING_EXTENSIONS = frozenset({"m4a", "mp3", "aac", "opus", "webm"})


def _remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not delete temporary file {path}: {e}")


class YouTubeDownloadService(IDownloadService):
    """Downloads and streams YouTube audio formats over HTTP."""

    def __init__(
        self,
        settings: YouTubeSourceSettings,
        download_settings: DownloadSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            settings: YouTube backend settings (user agent, timeouts, partial download)
            download_settings: Shared download settings (directory, chunk size)
            client: Optional httpx client, defaults to the shared pool
        """
        self._settings = settings
        self._download_settings = download_settings
        self._client = client
        self._inflight: SingleFlight[Path | None] = SingleFlight()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client()

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._settings.user_agent}

    async def download_audio(
        self,
        song: Song,
        on_progress: ProgressCallback | None = None,
    ) -> Path | None:
        stream = song.selected_stream
        if stream is None:
            raise InvalidStateException(f"No selected stream for song: {song.title}")

        return await self._inflight.run(
            stream.url, lambda: self._download(song, stream, on_progress)
        )

    async def _range_header(self, url: str) -> str | None:
        """Range header for partial downloads of large files, None for a full download."""
        if not self._settings.enable_partial_download:
            return None
        content_length = await self.get_content_length(url)
        if content_length <= self._settings.large_file_threshold_bytes:
            return None
        partial_size = self._settings.partial_download_size_bytes
        logger.info(
            f"Large file detected ({content_length} bytes), "
            f"downloading first {partial_size} bytes only"
        )
        return f"bytes=0-{partial_size - 1}"

    async def _download(
        self,
        song: Song,
        stream: AudioStreamInfo,
        on_progress: ProgressCallback | None,
    ) -> Path | None:
        started = time.perf_counter()
        logger.info(f"Downloading audio for song: {song.title}")

        reporter = ProgressReporter(song, on_progress)
        chunk_size = self._download_settings.chunk_size
        interval = self._download_settings.progress_interval_bytes
        download_dir = self._download_settings.download_dir
        await asyncio.to_thread(download_dir.mkdir, parents=True, exist_ok=True)

        suffix = f".{stream.extension}" if stream.extension else ""
        fd, temp_name = await asyncio.to_thread(
            tempfile.mkstemp, prefix="yt_", suffix=suffix, dir=download_dir
        )
        temp_path = Path(temp_name)
        downloaded = 0

        try:
            with os.fdopen(fd, "wb") as out:
                headers = self._headers()
                range_header = await self._range_header(stream.url)
                if range_header:
                    headers["Range"] = range_header

                client = await self._get_client()
                reporter.start()
                async with client.stream(
                    "GET",
                    stream.url,
                    headers=headers,
                    timeout=self._settings.request_timeout_seconds,
                ) as response:
                    response.raise_for_status()
                    total = int(response.headers.get("Content-Length") or 0)
                    next_report = interval

                    # Disk writes stay off the event loop
                    async for chunk in response.aiter_bytes(chunk_size):
                        await asyncio.to_thread(out.write, chunk)
                        downloaded += len(chunk)
                        if downloaded >= next_report or downloaded == total:
                            reporter.progress(downloaded, total)
                            next_report = (downloaded // interval + 1) * interval
        except asyncio.CancelledError:
            logger.warning(f"Download cancelled for song: {song.title}")
            reporter.fail("Download cancelled")
            _remove_file(temp_path)
            raise
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"Download failed for song: {song.title} after {elapsed_ms:.0f}ms: {e}")
            reporter.fail(f"Download failed: {e}")
            _remove_file(temp_path)
            return None

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Download completed: {downloaded} bytes saved to {temp_path} in {elapsed_ms:.0f}ms"
        )
        reporter.complete(downloaded)
        return temp_path

    async def get_audio_stream(self, stream_info: AudioStreamInfo) -> AudioStream:
        """Open a streaming GET for playback.

        Raises:
            SourceError: If the request fails or returns an error status
        """
        logger.info(f"Getting audio stream: {stream_info.format_id} ({stream_info.extension})")
        client = await self._get_client()
        request = client.build_request(
            "GET",
            stream_info.url,
            headers=self._headers(),
            timeout=self._settings.request_timeout_seconds,
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise SourceError(
                message=f"Failed to open audio stream: {e}",
                source=YOUTUBE_SOURCE_NAME,
                error_code="http_error",
                original_error=e,
                recoverable=True,
            ) from e

        if response.is_error:
            await response.aclose()
            raise SourceError(
                message=f"Audio stream request returned HTTP {response.status_code}",
                source=YOUTUBE_SOURCE_NAME,
                error_code=str(response.status_code),
                recoverable=response.status_code >= 500,
            )
        return HttpAudioStream(response, self._download_settings.chunk_size)

    async def get_content_length(self, url: str) -> int:
        try:
            client = await self._get_client()
            response = await client.head(
                url,
                headers=self._headers(),
                timeout=self._settings.request_timeout_seconds,
            )
            if response.is_error:
                logger.debug(f"HEAD {url} returned HTTP {response.status_code}")
                return 0
            return max(0, int(response.headers.get("Content-Length") or 0))
        except Exception as e:
            logger.warning(f"Failed to get content length for URL {url}: {e}")
            return 0

    def supports_direct_streaming(self, stream_info: AudioStreamInfo) -> bool:
        return stream_info.extension.lower() in DIRECT_STREAMING_EXTENSIONS
