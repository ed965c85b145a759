"""YouTube source settings (persisted as Sources/YouTube.json)."""

from enum import Enum

from tunesource.infrastructure.sources.base_settings import BaseSourceSettings, setting_field

YOUTUBE_SOURCE_NAME = "YouTube"

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class AudioFormat(str, Enum):
    """Preferred audio format for extracted downloads."""

    MP3 = "mp3"
    AAC = "aac"
    OGG = "ogg"
    WAV = "wav"


class YouTubeSearchType(str, Enum):
    """Which YouTube index the search service queries."""

    VIDEO = "video"
    MUSIC = "music"
    BOTH = "both"


class YouTubeSourceSettings(BaseSourceSettings):
    """Settings document of the YouTube backend."""

    SOURCE_NAME = YOUTUBE_SOURCE_NAME

    # API
    youtube_api_key: str = setting_field(
        "",
        label="API key",
        category="API",
        description="YouTube Data API v3 key (optional, used for playlists)",
    )
    enable_youtube_api: bool = setting_field(True, label="Use YouTube Data API", category="API")
    max_api_results: int = setting_field(50, label="Max API results", category="API", ge=1)

    # Audio
    preferred_audio_format: AudioFormat = setting_field(
        AudioFormat.MP3, label="Preferred audio format", category="Audio"
    )
    extract_audio_only: bool = setting_field(True, label="Extract audio only", category="Audio")

    # Search
    search_type: YouTubeSearchType = setting_field(
        YouTubeSearchType.VIDEO, label="Search type", category="Search"
    )
    include_playlists: bool = setting_field(True, label="Include playlists", category="Search")
    max_playlist_items: int = setting_field(
        100, label="Max playlist items", category="Search", ge=1
    )

    # Network
    user_agent: str = setting_field(DEFAULT_USER_AGENT, label="User agent", category="Network")
    request_timeout_seconds: int = setting_field(
        30, label="Request timeout (s)", category="Network", ge=1
    )
    retry_count: int = setting_field(3, label="Retry count", category="Network", ge=0)

    # Advanced
    enable_debug_logging: bool = setting_field(
        False, label="Debug logging", category="Advanced"
    )
    enable_partial_download: bool = setting_field(
        False,
        label="Partial download for large files",
        category="Advanced",
        description="Only fetch the first part of files above the threshold",
    )
    large_file_threshold_bytes: int = setting_field(
        50 * 1024 * 1024, label="Large file threshold (bytes)", category="Advanced", ge=1
    )
    partial_download_size_bytes: int = setting_field(
        10 * 1024 * 1024, label="Partial download size (bytes)", category="Advanced", ge=1
    )

    @property
    def use_data_api(self) -> bool:
        """True when playlist data should come from the Data API."""
        return self.enable_youtube_api and bool(self.youtube_api_key)
