"""Tests for source_lifespan startup and shutdown."""

from pathlib import Path

import pytest

from tunesource.config import DownloadSettings, Settings
from tunesource.domain.entities import Degraded, Disposed, Ready
from tunesource.domain.exceptions import ConfigurationError
from tunesource.infrastructure.sources.registry import SourceRegistry
from tunesource.lifecycle import source_lifespan


class TestSourceLifespan:
    """Test the source layer lifespan manager."""

    @pytest.mark.asyncio
    async def test_providers_ready_inside_and_disposed_after(self, app_settings, make_provider):
        """Providers are initialized on enter and disposed on exit."""
        registry = SourceRegistry()
        youtube = make_provider("YouTube")
        spotify = make_provider("Spotify")
        registry.register(youtube)
        registry.register(spotify)

        async with source_lifespan(app_settings, registry=registry, configure_logs=False) as active:
            assert active is registry
            assert isinstance(youtube.state, Ready)
            assert isinstance(spotify.state, Ready)
            assert [p.name for p in active.available()] == ["YouTube", "Spotify"]

        assert isinstance(youtube.state, Disposed)
        assert isinstance(spotify.state, Disposed)

    @pytest.mark.asyncio
    async def test_creates_directories(self, app_settings, make_provider):
        registry = SourceRegistry()
        registry.register(make_provider("YouTube"))

        async with source_lifespan(app_settings, registry=registry, configure_logs=False):
            assert app_settings.sources_dir.is_dir()
            assert app_settings.playlists_dir.is_dir()
            assert app_settings.download.download_dir.is_dir()

    @pytest.mark.asyncio
    async def test_degraded_provider_does_not_abort_startup(self, app_settings, make_provider):
        """A failing backend is Degraded while the others stay usable."""
        registry = SourceRegistry()
        healthy = make_provider("YouTube")
        broken = make_provider("Spotify", error=RuntimeError("auth failed"))
        registry.register(healthy)
        registry.register(broken)

        async with source_lifespan(app_settings, registry=registry, configure_logs=False) as active:
            assert isinstance(broken.state, Degraded)
            assert [p.name for p in active.available()] == ["YouTube"]

        assert isinstance(broken.state, Disposed)

    @pytest.mark.asyncio
    async def test_disposes_when_body_raises(self, app_settings, make_provider):
        registry = SourceRegistry()
        provider = make_provider("YouTube")
        registry.register(provider)

        with pytest.raises(ValueError, match="boom"):
            async with source_lifespan(app_settings, registry=registry, configure_logs=False):
                raise ValueError("boom")

        assert isinstance(provider.state, Disposed)

    @pytest.mark.asyncio
    async def test_unwritable_data_dir_raises_configuration_error(self, tmp_path: Path):
        """A data dir below a regular file cannot be created."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        settings = Settings(
            _env_file=None,
            app_data_dir=blocker / "appdata",
            download=DownloadSettings(download_dir=tmp_path / "downloads"),
        )

        with pytest.raises(ConfigurationError, match="TUNESOURCE_APP_DATA_DIR"):
            async with source_lifespan(settings, registry=SourceRegistry(), configure_logs=False):
                pass
