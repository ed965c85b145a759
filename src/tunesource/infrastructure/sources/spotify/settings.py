"""Spotify source settings (persisted as Sources/Spotify.json)."""

from enum import Enum, IntEnum

from tunesource.infrastructure.sources.base_settings import BaseSourceSettings, setting_field

SPOTIFY_SOURCE_NAME = "Spotify"


class SpotifyQuality(IntEnum):
    """Target bitrate in kbps for extracted audio."""

    LOW = 96
    MEDIUM = 160
    HIGH = 320


class SpotifySearchType(str, Enum):
    """Catalog object types the search service asks for."""

    TRACK = "track"
    ALBUM = "album"
    PLAYLIST = "playlist"
    ARTIST = "artist"
    ALL = "all"


class SpotifySourceSettings(BaseSourceSettings):
    """Settings document of the Spotify backend."""

    SOURCE_NAME = SPOTIFY_SOURCE_NAME

    # Authentication
    client_id: str = setting_field("", label="Client ID", category="Authentication")
    client_secret: str = setting_field("", label="Client secret", category="Authentication")
    redirect_uri: str = setting_field(
        "http://localhost:8888/callback", label="Redirect URI", category="Authentication"
    )

    # Search
    search_type: SpotifySearchType = setting_field(
        SpotifySearchType.TRACK, label="Search type", category="Search"
    )
    include_albums: bool = setting_field(True, label="Include albums", category="Search")
    include_playlists: bool = setting_field(True, label="Include playlists", category="Search")
    max_search_results: int = setting_field(
        50, label="Max search results", category="Search", ge=1, le=50
    )
    market: str = setting_field(
        "US",
        label="Market",
        category="Search",
        description="ISO country code used for artist top tracks",
    )

    # Playback
    preferred_quality: SpotifyQuality = setting_field(
        SpotifyQuality.HIGH, label="Preferred quality", category="Playback"
    )
    enable_crossfade: bool = setting_field(False, label="Crossfade", category="Playback")

    # Network
    request_timeout_seconds: int = setting_field(
        30, label="Request timeout (s)", category="Network", ge=1
    )
    download_retry_count: int = setting_field(
        2,
        label="Download retries",
        category="Network",
        description="Extra attempts when the extractor exits with an error",
        ge=0,
    )

    # Advanced
    enable_debug_logging: bool = setting_field(
        False, label="Debug logging", category="Advanced"
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)
