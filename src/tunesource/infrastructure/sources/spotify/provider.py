"""Spotify source provider."""

import logging

import httpx

from tunesource.config import Settings, get_settings
from tunesource.domain.exceptions import ConfigurationError
from tunesource.domain.ports import SourceServices
from tunesource.infrastructure.integrations.spotify_client import SpotifyClient
from tunesource.infrastructure.integrations.ytdlp_process import YtDlpProcessRunner
from tunesource.infrastructure.sources.base_provider import BaseSourceProvider
from tunesource.infrastructure.sources.spotify.download import SpotifyDownloadService
from tunesource.infrastructure.sources.spotify.metadata import SpotifyMetadataService
from tunesource.infrastructure.sources.spotify.playlist import SpotifyPlaylistService
from tunesource.infrastructure.sources.spotify.search import SpotifySearchService
from tunesource.infrastructure.sources.spotify.settings import (
    SPOTIFY_SOURCE_NAME,
    SpotifySourceSettings,
)

logger = logging.getLogger(__name__)


class SpotifySourceProvider(BaseSourceProvider[SpotifySourceSettings]):
    """Spotify backend: Web API for catalog data, yt-dlp for audio."""

    def __init__(
        self,
        settings: SpotifySourceSettings | None = None,
        app_settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        runner: YtDlpProcessRunner | None = None,
    ) -> None:
        """
        Args:
            settings: Backend settings, defaults to a fresh document in the app's Sources dir
            app_settings: Process settings (paths, yt-dlp executable), defaults to get_settings()
            http_client: Optional httpx client for the Web API
            runner: Optional yt-dlp runner for downloads
        """
        self._app_settings = app_settings or get_settings()
        super().__init__(
            settings or SpotifySourceSettings(settings_dir=self._app_settings.sources_dir)
        )
        self._http_client = http_client
        self._runner = runner
        self._client: SpotifyClient | None = None

    @classmethod
    def from_app_settings(cls, app_settings: Settings) -> "SpotifySourceProvider":
        return cls(app_settings=app_settings)

    @property
    def name(self) -> str:
        return SPOTIFY_SOURCE_NAME

    @property
    def description(self) -> str:
        return "Spotify streaming source using Spotify Web API"

    @property
    def client(self) -> SpotifyClient | None:
        """The authenticated Web API client (None until initialized)."""
        return self._client

    # Hey future me, auth happens HERE and not in the constructor! Missing credentials or a
    # rejected secret raise, BaseSourceProvider turns that into Degraded("...") and the
    # YouTube source keeps working.
    async def _create_services(self) -> SourceServices:
        settings = self.settings
        if settings.enable_debug_logging:
            logging.getLogger("tunesource.infrastructure.sources.spotify").setLevel(logging.DEBUG)

        if not settings.has_credentials:
            raise ConfigurationError(
                "Spotify client_id and client_secret are not configured "
                f"(edit {settings.settings_file})"
            )

        client = SpotifyClient(settings.client_id, settings.client_secret, client=self._http_client)
        await client.authenticate()
        self._client = client

        return SourceServices(
            search=SpotifySearchService(client, settings),
            metadata=SpotifyMetadataService(client, settings),
            download=SpotifyDownloadService(
                settings, self._app_settings.download, runner=self._runner
            ),
            playlist=SpotifyPlaylistService(client, settings),
        )

    async def _release(self, services: SourceServices | None) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
