"""
Shared data model for every music source.

Hey future me – these records are the LINGUA FRANCA between all backends!
YouTube and Spotify both hand out Song / Playlist / AudioStreamInfo in exactly
this shape, so the consumer never has to know who served a result.

Songs are mutable: once returned they belong to the queue/UI layer
(playback state, selected stream). Backends must never keep references to the
Song objects they hand out.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from tunesource.domain.exceptions import ValidationException

# Hey future me – an unknown extension must NOT break playback selection!
# It degrades to mp4a (the most common codec YouTube serves) instead of raising.
DEFAULT_CODEC = "mp4a"

_CODEC_BY_EXTENSION: dict[str, str] = {
    "m4a": "mp4a",
    "aac": "aac",
    "opus": "opus",
    "ogg": "vorbis",
    "mp3": "mp3",
    "flac": "flac",
    "webm": "opus",
    "wav": "pcm",
}


def codec_from_extension(extension: str | None) -> str:
    """Map a file extension to the codec a decoder should expect.

    Args:
        extension: File extension with or without leading dot (case-insensitive)

    Returns:
        Codec name, DEFAULT_CODEC for unknown or empty extensions
    """
    if not extension:
        return DEFAULT_CODEC
    return _CODEC_BY_EXTENSION.get(extension.lower().lstrip("."), DEFAULT_CODEC)


class PlaybackState(str, Enum):
    """Playback state of a song in the consumer's queue."""

    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"
    ERROR = "error"


@dataclass
class AudioStreamInfo:
    """
    One candidate audio stream for a song.

    The url may be a backend-internal pseudo URI (spotify:track:<id>) that is
    NOT fetchable over HTTP. extension + codec must be enough to pick a decoder.
    """

    url: str
    bitrate: int = 0  # kbps, 0 = unknown
    extension: str = ""
    codec: str = ""
    container: str = ""
    format_id: str = ""
    video_codec: str | None = None
    file_size: int | None = None

    def __post_init__(self) -> None:
        """Normalize extension and fill codec/container defaults."""
        self.extension = self.extension.lower().lstrip(".")
        if self.bitrate < 0:
            self.bitrate = 0
        if not self.codec:
            self.codec = codec_from_extension(self.extension)
        if not self.container:
            self.container = self.extension

    @property
    def is_audio_only(self) -> bool:
        """True when the stream carries no video track."""
        return not self.video_codec or self.video_codec == "none"


@dataclass
class Song:
    """A single track as returned by any backend."""

    id: str
    title: str
    artist: str = ""
    album: str | None = None
    duration_seconds: float | None = None
    thumbnail_url: str | None = None
    url: str | None = None
    description: str = ""
    source: str = ""
    selected_stream: AudioStreamInfo | None = None
    playlist_name: str | None = None
    state: PlaybackState = PlaybackState.STOPPED

    def __post_init__(self) -> None:
        """Validate essential fields."""
        if not self.id:
            raise ValidationException("Song id cannot be empty")

    @property
    def display_name(self) -> str:
        """'Artist - Title', or just the title when the artist is unknown."""
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title


@dataclass
class Playlist:
    """A playlist from any backend (or the local playlist store)."""

    id: str
    name: str
    description: str = ""
    thumbnail_url: str | None = None
    # Upper-bound estimate until the songs are actually enumerated
    song_count: int = 0
    source: str = ""
    author: str | None = None
    is_public: bool = True
    songs: list[Song] = field(default_factory=list)


class DownloadPhase(str, Enum):
    """Phase of a download as reported in progress events."""

    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if no further events follow this phase."""
        return self in (DownloadPhase.COMPLETED, DownloadPhase.FAILED)


@dataclass(frozen=True)
class DownloadProgressEvent:
    """Immutable progress notification for one download.

    Ordering per download: STARTED first, terminal (COMPLETED/FAILED) last,
    bytes_downloaded non-decreasing in between. Consumers correlate events of
    concurrent downloads by the song they reference.
    """

    song: Song
    bytes_downloaded: int = 0
    total_bytes: int = 0  # 0 = unknown; the final file size on COMPLETED
    status: str = ""
    phase: DownloadPhase = DownloadPhase.PROGRESS

    def __post_init__(self) -> None:
        """Clamp negative byte counts."""
        # Use object.__setattr__ because frozen=True
        if self.bytes_downloaded < 0:
            object.__setattr__(self, "bytes_downloaded", 0)
        if self.total_bytes < 0:
            object.__setattr__(self, "total_bytes", 0)

    @property
    def percentage(self) -> int:
        """Whole percent downloaded, 0 when the total is unknown."""
        if self.total_bytes <= 0:
            return 0
        return min(100, self.bytes_downloaded * 100 // self.total_bytes)

    @property
    def is_terminal(self) -> bool:
        """Check if this is the last event of its download."""
        return self.phase.is_terminal


ProgressCallback = Callable[[DownloadProgressEvent], None]


__all__ = [
    "DEFAULT_CODEC",
    "AudioStreamInfo",
    "DownloadPhase",
    "DownloadProgressEvent",
    "PlaybackState",
    "Playlist",
    "ProgressCallback",
    "Song",
    "codec_from_extension",
]
