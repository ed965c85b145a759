"""Tests for the built-in YouTube and Spotify providers."""

import json

import httpx
import pytest

from tunesource.domain.entities import Degraded, Disposed, Ready
from tunesource.domain.exceptions import UninitializedServiceError
from tunesource.infrastructure.sources.spotify import SpotifySourceProvider
from tunesource.infrastructure.sources.spotify.download import SpotifyDownloadService
from tunesource.infrastructure.sources.spotify.search import SpotifySearchService
from tunesource.infrastructure.sources.youtube import YouTubeSourceProvider
from tunesource.infrastructure.sources.youtube.download import YouTubeDownloadService
from tunesource.infrastructure.sources.youtube.playlist import YouTubePlaylistService


def spotify_transport(accept: bool = True) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "accounts.spotify.com":
            if not accept:
                return httpx.Response(400, json={"error": "invalid_client"})
            return httpx.Response(200, json={"access_token": "app-token", "expires_in": 3600})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


class TestYouTubeSourceProvider:
    """YouTube needs no credentials and becomes Ready straight away."""

    @pytest.mark.asyncio
    async def test_initialize_builds_services(self, app_settings):
        provider = YouTubeSourceProvider(app_settings=app_settings)

        await provider.initialize()

        assert isinstance(provider.state, Ready)
        assert provider.name == "YouTube"
        assert isinstance(provider.download_service, YouTubeDownloadService)
        assert isinstance(provider.playlist_service, YouTubePlaylistService)

    @pytest.mark.asyncio
    async def test_settings_file_lives_in_sources_dir(self, app_settings):
        provider = YouTubeSourceProvider(app_settings=app_settings)
        assert provider.settings.settings_file == app_settings.sources_dir / "YouTube.json"

    @pytest.mark.asyncio
    async def test_services_unavailable_after_dispose(self, app_settings):
        async with YouTubeSourceProvider(app_settings=app_settings) as provider:
            assert provider.is_available

        assert isinstance(provider.state, Disposed)
        with pytest.raises(UninitializedServiceError):
            _ = provider.search_service


class TestSpotifySourceProvider:
    """Spotify authenticates during initialize and degrades on failure."""

    @pytest.mark.asyncio
    async def test_missing_credentials_degrades(self, app_settings):
        provider = SpotifySourceProvider(app_settings=app_settings)

        await provider.initialize()

        assert isinstance(provider.state, Degraded)
        assert "client_id" in provider.state.reason
        with pytest.raises(UninitializedServiceError, match="Spotify"):
            _ = provider.search_service

    @pytest.mark.asyncio
    async def test_credentials_from_settings_file(self, app_settings):
        """Credentials saved in Spotify.json are picked up before authenticating."""
        app_settings.sources_dir.mkdir(parents=True)
        (app_settings.sources_dir / "Spotify.json").write_text(
            json.dumps({"client_id": "id", "client_secret": "secret"})
        )

        async with httpx.AsyncClient(transport=spotify_transport()) as http:
            provider = SpotifySourceProvider(app_settings=app_settings, http_client=http)
            await provider.initialize()

            assert isinstance(provider.state, Ready)
            assert provider.client is not None
            assert provider.client.is_authenticated
            assert isinstance(provider.search_service, SpotifySearchService)
            assert isinstance(provider.download_service, SpotifyDownloadService)

            await provider.dispose()
            assert provider.client is None

    @pytest.mark.asyncio
    async def test_rejected_credentials_degrade(self, app_settings):
        app_settings.sources_dir.mkdir(parents=True)
        (app_settings.sources_dir / "Spotify.json").write_text(
            json.dumps({"client_id": "id", "client_secret": "wrong"})
        )

        async with httpx.AsyncClient(transport=spotify_transport(accept=False)) as http:
            provider = SpotifySourceProvider(app_settings=app_settings, http_client=http)
            await provider.initialize()

        assert isinstance(provider.state, Degraded)
        assert provider.client is None
