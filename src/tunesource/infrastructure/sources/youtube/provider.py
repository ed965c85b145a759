"""YouTube source provider."""

import logging

import httpx

from tunesource.config import DownloadSettings, Settings, get_settings
from tunesource.domain.ports import SourceServices
from tunesource.infrastructure.integrations.youtube_data_client import YouTubeDataClient
from tunesource.infrastructure.integrations.ytdlp_client import YtDlpClient
from tunesource.infrastructure.sources.base_provider import BaseSourceProvider
from tunesource.infrastructure.sources.playlist_store import LocalPlaylistStore
from tunesource.infrastructure.sources.youtube.download import YouTubeDownloadService
from tunesource.infrastructure.sources.youtube.metadata import YouTubeMetadataService
from tunesource.infrastructure.sources.youtube.playlist import YouTubePlaylistService
from tunesource.infrastructure.sources.youtube.search import YouTubeSearchService
from tunesource.infrastructure.sources.youtube.settings import (
    YOUTUBE_SOURCE_NAME,
    YouTubeSourceSettings,
)

logger = logging.getLogger(__name__)


class YouTubeSourceProvider(BaseSourceProvider[YouTubeSourceSettings]):
    """YouTube backend: yt-dlp for search/metadata, direct HTTP for audio."""

    def __init__(
        self,
        settings: YouTubeSourceSettings | None = None,
        app_settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            settings: Backend settings, defaults to a fresh document in the app's Sources dir
            app_settings: Process settings (paths, download dir), defaults to get_settings()
            http_client: Optional httpx client for downloads and the Data API
        """
        self._app_settings = app_settings or get_settings()
        super().__init__(
            settings or YouTubeSourceSettings(settings_dir=self._app_settings.sources_dir)
        )
        self._http_client = http_client

    @classmethod
    def from_app_settings(cls, app_settings: Settings) -> "YouTubeSourceProvider":
        return cls(app_settings=app_settings)

    @property
    def name(self) -> str:
        return YOUTUBE_SOURCE_NAME

    @property
    def description(self) -> str:
        return "YouTube videos and YouTube Music via yt-dlp"

    @property
    def download_settings(self) -> DownloadSettings:
        return self._app_settings.download

    async def _create_services(self) -> SourceServices:
        settings = self.settings
        if settings.enable_debug_logging:
            logging.getLogger("tunesource.infrastructure.sources.youtube").setLevel(logging.DEBUG)

        ytdlp = YtDlpClient(
            user_agent=settings.user_agent,
            socket_timeout=settings.request_timeout_seconds,
            retries=settings.retry_count,
            verbose=settings.enable_debug_logging,
        )

        data_api: YouTubeDataClient | None = None
        if settings.use_data_api:
            logger.info("YouTube Data API key configured, using it for playlists")
            data_api = YouTubeDataClient(settings.youtube_api_key, client=self._http_client)

        store = LocalPlaylistStore(self._app_settings.playlists_dir / YOUTUBE_SOURCE_NAME)

        return SourceServices(
            search=YouTubeSearchService(ytdlp, settings),
            metadata=YouTubeMetadataService(ytdlp),
            download=YouTubeDownloadService(settings, self.download_settings, client=self._http_client),
            playlist=YouTubePlaylistService(settings, store, ytdlp, data_api=data_api),
        )
