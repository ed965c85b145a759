"""Application settings loaded from environment variables.

These are the process-wide settings (paths, logging, HTTP pool, extractor).
Per-backend settings (API keys, quality preferences) live in the backends'
own JSON documents, see tunesource.infrastructure.sources.base_settings.

Environment examples:
    TUNESOURCE_LOG_LEVEL=DEBUG
    TUNESOURCE_APP_DATA_DIR=/var/lib/tunesource
    TUNESOURCE_OBSERVABILITY__LOG_JSON_FORMAT=true
    TUNESOURCE_DOWNLOAD__YT_DLP_PATH=/usr/local/bin/yt-dlp
"""

import os
import sys
import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Hey future me, this mimics what desktop apps call "AppData": %APPDATA% on Windows,
# $XDG_DATA_HOME (or ~/.local/share) elsewhere. The app name is appended later, so
# two apps sharing the same base dir never collide.
def default_app_data_dir() -> Path:
    """Return the platform's per-user application data directory."""
    if sys.platform == "win32" and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"])
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".local" / "share"


class ObservabilitySettings(BaseModel):
    """Logging output settings."""

    log_json_format: bool = Field(
        default=False, description="Emit JSON log lines (recommended for production)"
    )


class DownloadSettings(BaseModel):
    """Download pipeline settings shared by all backends."""

    yt_dlp_path: str = Field(default="yt-dlp", description="yt-dlp executable")
    download_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "tunesource",
        description="Directory for temporary audio files",
    )
    chunk_size: int = Field(default=8192, ge=512)
    # Progress events for direct downloads fire every N bytes, not on every chunk
    progress_interval_bytes: int = Field(default=64 * 1024, ge=1)


class HttpSettings(BaseModel):
    """Shared HTTP client pool settings."""

    timeout: float = Field(default=30.0, gt=0)
    max_connections: int = Field(default=50, ge=1)
    max_keepalive: int = Field(default=20, ge=0)


class Settings(BaseSettings):
    """Process-wide TuneSource settings."""

    model_config = SettingsConfigDict(
        env_prefix="TUNESOURCE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "TuneSource"
    app_data_dir: Path = Field(default_factory=default_app_data_dir)
    log_level: str = "INFO"

    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @property
    def app_dir(self) -> Path:
        """<app-data>/<app-name>"""
        return self.app_data_dir / self.app_name

    @property
    def sources_dir(self) -> Path:
        """Directory holding one settings JSON per backend."""
        return self.app_dir / "Sources"

    @property
    def playlists_dir(self) -> Path:
        """Root of the local playlist store."""
        return self.app_dir / "Playlists"

    def ensure_directories(self) -> None:
        """Create the settings, playlist and download directories."""
        for directory in (self.sources_dir, self.playlists_dir, self.download.download_dir):
            directory.mkdir(parents=True, exist_ok=True)


# Yo, cached: settings are read once per process. Tests that tweak env vars
# must call get_settings.cache_clear() afterwards.
@lru_cache
def get_settings() -> Settings:
    """Get the cached process settings."""
    return Settings()
