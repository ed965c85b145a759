"""Download capability port.

Two strategies sit behind the same interface:
1. Direct streaming - the stream URL is plain HTTP, bytes come straight from
   the response (YouTube).
2. Subprocess-mediated - the stream is a pseudo URI, an external extractor
   writes a local file first (Spotify via yt-dlp).

Callers check supports_direct_streaming() and prefer get_audio_stream() when
it is True.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from pathlib import Path
from types import TracebackType

from tunesource.domain.models import AudioStreamInfo, ProgressCallback, Song


class AudioStream(ABC):
    """Readable audio bytes, positioned at the start of the audio data.

    Usage:
        async with await service.get_audio_stream(stream_info) as audio:
            async for chunk in audio:
                player.feed(chunk)
    """

    @property
    @abstractmethod
    def content_length(self) -> int:
        """Total size in bytes, 0 if unknown."""
        ...

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[bytes]:
        """Iterate over audio chunks."""
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying response or file handle."""
        ...

    async def read(self) -> bytes:
        """Read everything that is left."""
        chunks = [chunk async for chunk in self]
        return b"".join(chunks)

    async def __aenter__(self) -> "AudioStream":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class IDownloadService(ABC):
    """Turn an AudioStreamInfo into local bytes."""

    @abstractmethod
    async def download_audio(
        self,
        song: Song,
        on_progress: ProgressCallback | None = None,
    ) -> Path | None:
        """Download the song's selected stream to a fresh temporary file.

        Progress events arrive in order: STARTED, zero or more PROGRESS with
        non-decreasing bytes, then exactly one COMPLETED or FAILED.

        Args:
            song: Song with selected_stream set
            on_progress: Optional callback receiving DownloadProgressEvent

        Returns:
            Path to the downloaded file, None if the download failed

        Raises:
            InvalidStateException: If the song has no selected stream
            ToolMissingError: If the extractor executable is missing
        """
        ...

    @abstractmethod
    async def get_audio_stream(self, stream_info: AudioStreamInfo) -> AudioStream:
        """Open a readable stream for playback."""
        ...

    @abstractmethod
    async def get_content_length(self, url: str) -> int:
        """Look up the content length of a URL, 0 when unknown or on failure."""
        ...

    @abstractmethod
    def supports_direct_streaming(self, stream_info: AudioStreamInfo) -> bool:
        """Check if get_audio_stream() can serve bytes without a full download."""
        ...
