"""
Spotify download service: yt-dlp subprocess extraction.

Hey future me – Spotify streams are DRM protected, there is no URL we could GET.
The track is resolved by yt-dlp (a "ytsearch1:<artist> - <title>" query when we
know the song, the open.spotify.com URL otherwise), extracted to audio and
converted to the stream's extension. Progress comes from our own
--progress-template, one "download:<bytes>/<total>" line per update.

Contract:
- STARTED before the process is spawned, COMPLETED only when the exit code is 0
  AND the output file exists, otherwise FAILED + partial files removed + None.
- Nonzero exits are retried (download_retry_count extra attempts, linear backoff).
  A missing executable is NOT retried, ToolMissingError goes straight to the caller.
- Cancellation kills the process (see YtDlpProcessRunner) and propagates.
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path

from tunesource.config import DownloadSettings
from tunesource.domain.exceptions import InvalidStateException, ToolMissingError
from tunesource.domain.models import AudioStreamInfo, ProgressCallback, Song
from tunesource.domain.ports import AudioStream, IDownloadService
from tunesource.infrastructure.integrations.ytdlp_process import (
    PROGRESS_TEMPLATE,
    YtDlpProcessRunner,
    parse_progress_line,
    progress_percentage,
)
from tunesource.infrastructure.sources.progress import ProgressReporter
from tunesource.infrastructure.sources.single_flight import SingleFlight
from tunesource.infrastructure.sources.spotify.mapping import SPOTIFY_TRACK_URL
from tunesource.infrastructure.sources.spotify.settings import (
    SPOTIFY_SOURCE_NAME,
    SpotifySourceSettings,
)
from tunesource.infrastructure.sources.streams import EmptyAudioStream, FileAudioStream

logger = logging.getLogger(__name__)

SPOTIFY_URI_PREFIX = "spotify:track:"
DEFAULT_AUDIO_FORMAT = "mp3"


def track_id_from_uri(uri: str) -> str | None:
    """Extract the track id of a spotify:track:<id> URI, None for anything else."""
    if not uri.startswith(SPOTIFY_URI_PREFIX):
        return None
    track_id = uri[len(SPOTIFY_URI_PREFIX):].strip()
    return track_id or None


def build_source_url(song: Song, track_id: str) -> str:
    """What yt-dlp should fetch for a track."""
    if song.artist and song.title and song.title != track_id:
        return f"ytsearch1:{song.artist} - {song.title}"
    return SPOTIFY_TRACK_URL.format(track_id=track_id)


def build_ytdlp_args(
    source_url: str,
    output_template: str,
    audio_format: str,
    bitrate_kbps: int,
) -> list[str]:
    """Command line for one extraction run (without the executable)."""
    return [
        "--extract-audio",
        "--audio-format",
        audio_format,
        "--audio-quality",
        "0",
        "--output",
        output_template,
        "--no-playlist",
        "--no-warnings",
        "--quiet",
        "--progress",
        "--newline",
        "--progress-template",
        PROGRESS_TEMPLATE,
        "--postprocessor-args",
        f"ExtractAudio:-b:a {bitrate_kbps}k",
        source_url,
    ]


class SpotifyDownloadService(IDownloadService):
    """Downloads Spotify tracks through the yt-dlp executable."""

    def __init__(
        self,
        settings: SpotifySourceSettings,
        download_settings: DownloadSettings,
        runner: YtDlpProcessRunner | None = None,
        retry_backoff_seconds: float = 1.0,
    ) -> None:
        """
        Args:
            settings: Spotify backend settings (quality, retry count)
            download_settings: Shared download settings (directory, yt-dlp path)
            runner: Subprocess runner, defaults to one for download_settings.yt_dlp_path
            retry_backoff_seconds: Base delay between attempts, multiplied by the attempt number
        """
        self._settings = settings
        self._download_settings = download_settings
        self._runner = runner or YtDlpProcessRunner(download_settings.yt_dlp_path)
        self._retry_backoff_seconds = retry_backoff_seconds
        self._inflight: SingleFlight[Path | None] = SingleFlight()

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

    def _cleanup(self, stem: str) -> None:
        for leftover in self._download_settings.download_dir.glob(f"{stem}.*"):
            try:
                leftover.unlink()
            except OSError as e:
                logger.warning(f"Could not delete partial download {leftover}: {e}")

    def _find_output(self, stem: str, audio_format: str) -> Path | None:
        expected = self._download_settings.download_dir / f"{stem}.{audio_format}"
        if expected.is_file():
            return expected
        # Post-processing may have kept another container
        for candidate in sorted(self._download_settings.download_dir.glob(f"{stem}.*")):
            if candidate.is_file() and candidate.suffix not in {".part", ".ytdl", ".temp"}:
                return candidate
        return None

    async def _download(
        self,
        song: Song,
        stream: AudioStreamInfo,
        on_progress: ProgressCallback | None,
    ) -> Path | None:
        reporter = ProgressReporter(song, on_progress)
        track_id = track_id_from_uri(stream.url)
        if track_id is None:
            logger.error(f"Invalid Spotify URL format: {stream.url}")
            reporter.fail("Invalid Spotify track URI")
            return None

        started = time.perf_counter()
        audio_format = stream.extension or DEFAULT_AUDIO_FORMAT
        download_dir = self._download_settings.download_dir
        await asyncio.to_thread(download_dir.mkdir, parents=True, exist_ok=True)

        stem = f"spotify_{track_id}_{uuid.uuid4().hex[:8]}"
        args = build_ytdlp_args(
            source_url=build_source_url(song, track_id),
            output_template=str(download_dir / f"{stem}.%(ext)s"),
            audio_format=audio_format,
            bitrate_kbps=int(self._settings.preferred_quality),
        )

        def _on_line(line: str) -> None:
            parsed = parse_progress_line(line)
            if parsed is None:
                return
            downloaded, total = parsed
            reporter.progress(
                downloaded, total, f"Downloading... {progress_percentage(downloaded, total)}%"
            )

        attempts = 1 + self._settings.download_retry_count
        logger.debug(f"Downloading Spotify audio: {song.display_name} ({track_id})")
        reporter.start()

        try:
            for attempt in range(1, attempts + 1):
                result = await self._runner.run(args, on_stdout_line=_on_line)
                if result.succeeded:
                    output = await asyncio.to_thread(self._find_output, stem, audio_format)
                    if output is not None:
                        elapsed_ms = (time.perf_counter() - started) * 1000
                        logger.info(f"Successfully downloaded {song.display_name} to {output} in {elapsed_ms:.0f}ms")
                        reporter.complete(output.stat().st_size)
                        return output
                    logger.error(f"yt-dlp exited cleanly but produced no file for {track_id}")
                else:
                    logger.error(
                        f"Download failed for {song.display_name} ({track_id}). "
                        f"Exit code: {result.exit_code} (attempt {attempt}/{attempts})"
                    )
                if result.stderr_lines:
                    logger.error("yt-dlp errors: " + "\n".join(result.stderr_lines))

                await asyncio.to_thread(self._cleanup, stem)
                if attempt < attempts:
                    reporter.status(f"Retrying ({attempt + 1}/{attempts})...")
                    await asyncio.sleep(self._retry_backoff_seconds * attempt)
        except ToolMissingError:
            reporter.fail("yt-dlp is not installed")
            raise
        except asyncio.CancelledError:
            logger.warning(f"Download cancelled for {song.display_name}")
            self._cleanup(stem)
            reporter.fail("Download cancelled")
            raise
        except Exception as e:
            logger.error(f"Error downloading Spotify audio {song.display_name}: {e}", exc_info=True)
            self._cleanup(stem)
            reporter.fail(f"Download failed: {e}")
            return None

        reporter.fail("Download failed")
        return None

    # Listen up, Spotify can't stream directly: the whole file is downloaded first,
    # then opened. The file stays in download_dir after the stream is closed.
    async def get_audio_stream(self, stream_info: AudioStreamInfo) -> AudioStream:
        logger.debug(f"Getting audio stream for: {stream_info.url}")
        track_id = track_id_from_uri(stream_info.url) or stream_info.url
        song = Song(
            id=track_id,
            title=track_id,
            source=SPOTIFY_SOURCE_NAME,
            selected_stream=stream_info,
        )
        path = await self.download_audio(song)
        if path is None:
            logger.error(f"Error getting audio stream for: {stream_info.url}")
            return EmptyAudioStream()
        return FileAudioStream(path, chunk_size=self._download_settings.chunk_size)

    async def get_content_length(self, url: str) -> int:
        # Unknown until the extractor has run
        return 0

    def supports_direct_streaming(self, stream_info: AudioStreamInfo) -> bool:
        return False
