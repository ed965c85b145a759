"""Ordered progress reporting for one download.

Guarantees per download, whatever the backend does:
- STARTED is delivered first,
- PROGRESS events never go backwards in bytes (a retry restarting at 0 is
  held back until it overtakes the previous high-water mark),
- exactly one terminal event (COMPLETED or FAILED) is delivered last,
  later events are dropped.

A misbehaving callback is logged and never breaks the download.
"""

import logging

from tunesource.domain.models import (
    DownloadPhase,
    DownloadProgressEvent,
    ProgressCallback,
    Song,
)

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Wraps a ProgressCallback and enforces event ordering."""

    def __init__(self, song: Song, callback: ProgressCallback | None) -> None:
        self.song = song
        self._callback = callback
        self._started = False
        self._finished = False
        self._last_bytes = 0
        self._last_total = 0

    @property
    def finished(self) -> bool:
        """True once a terminal event was emitted."""
        return self._finished

    @property
    def bytes_downloaded(self) -> int:
        return self._last_bytes

    def _emit(self, event: DownloadProgressEvent) -> None:
        if self._callback is None:
            return
        try:
            self._callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed for '{self.song.title}': {e}")

    def start(self, status: str = "Starting download...") -> None:
        if self._started:
            return
        self._started = True
        self._emit(
            DownloadProgressEvent(song=self.song, status=status, phase=DownloadPhase.STARTED)
        )

    def progress(self, bytes_downloaded: int, total_bytes: int = 0, status: str | None = None) -> None:
        if self._finished:
            return
        self.start()
        if bytes_downloaded < self._last_bytes:
            logger.debug(
                f"Dropping regressing progress {bytes_downloaded} < {self._last_bytes} "
                f"for '{self.song.title}'"
            )
            return
        self._last_bytes = bytes_downloaded
        self._last_total = total_bytes
        if status is None:
            percentage = bytes_downloaded * 100 // total_bytes if total_bytes > 0 else 0
            status = f"Downloading... {percentage}%"
        self._emit(
            DownloadProgressEvent(
                song=self.song,
                bytes_downloaded=bytes_downloaded,
                total_bytes=total_bytes,
                status=status,
                phase=DownloadPhase.PROGRESS,
            )
        )

    def status(self, status: str) -> None:
        """Non-quantified phase update (e.g. "Retrying (2/3)...")."""
        if self._finished:
            return
        self.start()
        self._emit(
            DownloadProgressEvent(
                song=self.song,
                bytes_downloaded=self._last_bytes,
                total_bytes=self._last_total,
                status=status,
                phase=DownloadPhase.PROGRESS,
            )
        )

    def complete(self, total_bytes: int | None = None, status: str = "Download completed") -> None:
        """Deliver COMPLETED.

        Args:
            total_bytes: Size of the finished file, defaults to the bytes seen so far.
                Conversion can leave it below bytes_downloaded, which keeps its
                high-water mark.
        """
        if self._finished:
            return
        self.start()
        self._finished = True
        file_size = total_bytes if total_bytes is not None else self._last_bytes
        self._emit(
            DownloadProgressEvent(
                song=self.song,
                bytes_downloaded=max(self._last_bytes, file_size),
                total_bytes=file_size,
                status=status,
                phase=DownloadPhase.COMPLETED,
            )
        )

    def fail(self, status: str = "Download failed") -> None:
        if self._finished:
            return
        self.start()
        self._finished = True
        self._emit(
            DownloadProgressEvent(
                song=self.song,
                bytes_downloaded=self._last_bytes,
                total_bytes=self._last_total,
                status=status,
                phase=DownloadPhase.FAILED,
            )
        )
