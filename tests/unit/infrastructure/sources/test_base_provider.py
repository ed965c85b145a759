"""Tests for the provider lifecycle state machine."""

# Hey future me - these tests verify that one broken backend degrades instead of
# crashing startup, and that initialize() really runs setup only once.

import asyncio
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tunesource.domain.entities.source_state import (
    Degraded,
    Disposed,
    ProviderStatus,
    Ready,
    Uninitialized,
)
from tunesource.domain.exceptions import ConfigurationError, UninitializedServiceError
from tunesource.domain.ports import (
    IDownloadService,
    IMetadataService,
    IPlaylistService,
    ISearchService,
    SourceServices,
)
from tunesource.infrastructure.sources.base_provider import BaseSourceProvider
from tunesource.infrastructure.sources.youtube.settings import YouTubeSourceSettings


def make_services() -> SourceServices:
    return SourceServices(
        search=MagicMock(spec=ISearchService),
        metadata=MagicMock(spec=IMetadataService),
        download=MagicMock(spec=IDownloadService),
        playlist=MagicMock(spec=IPlaylistService),
    )


class FakeProvider(BaseSourceProvider[YouTubeSourceSettings]):
    """Provider whose setup can be slowed down, blocked or broken."""

    def __init__(
        self,
        settings: YouTubeSourceSettings,
        error: Exception | None = None,
        block: bool = False,
    ) -> None:
        super().__init__(settings)
        self.error = error
        self.block = block
        self.entered = asyncio.Event()
        self.create_calls = 0
        self.release_calls = 0
        self.services = make_services()

    @property
    def name(self) -> str:
        return "Fake"

    @property
    def description(self) -> str:
        return "Provider for lifecycle tests"

    async def _create_services(self) -> SourceServices:
        self.create_calls += 1
        self.entered.set()
        if self.block:
            await asyncio.Event().wait()
        await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        return self.services

    async def _release(self, services: SourceServices | None) -> None:
        self.release_calls += 1


class TestInitialize:
    """Test BaseSourceProvider.initialize()."""

    @pytest.fixture
    def settings(self, tmp_path: Path) -> YouTubeSourceSettings:
        return YouTubeSourceSettings(settings_dir=tmp_path)

    @pytest.mark.asyncio
    async def test_initialize_reaches_ready(self, settings: YouTubeSourceSettings) -> None:
        """Successful setup ends in Ready with the created services."""
        provider = FakeProvider(settings)
        assert isinstance(provider.state, Uninitialized)

        await provider.initialize()

        assert isinstance(provider.state, Ready)
        assert provider.state.status == ProviderStatus.READY
        assert provider.is_available
        assert provider.search_service is provider.services.search
        assert provider.metadata_service is provider.services.metadata
        assert provider.download_service is provider.services.download
        assert provider.playlist_service is provider.services.playlist

    @pytest.mark.asyncio
    async def test_concurrent_initialize_runs_setup_once(
        self, settings: YouTubeSourceSettings
    ) -> None:
        """Ten concurrent callers trigger exactly one setup."""
        provider = FakeProvider(settings)

        await asyncio.gather(*(provider.initialize() for _ in range(10)))

        assert provider.create_calls == 1
        assert provider.is_available

    @pytest.mark.asyncio
    async def test_sequential_initialize_is_noop(self, settings: YouTubeSourceSettings) -> None:
        """A second initialize() on a Ready provider does nothing."""
        provider = FakeProvider(settings)

        await provider.initialize()
        state_before = provider.state
        await provider.initialize()

        assert provider.create_calls == 1
        assert provider.state is state_before

    @pytest.mark.asyncio
    async def test_setup_failure_degrades(self, settings: YouTubeSourceSettings) -> None:
        """Failures never propagate, the provider ends Degraded with a reason."""
        provider = FakeProvider(settings, error=ConfigurationError("missing credentials"))

        await provider.initialize()

        assert isinstance(provider.state, Degraded)
        assert provider.state.reason == "missing credentials"
        assert not provider.is_available

    @pytest.mark.asyncio
    async def test_degraded_is_not_retried(self, settings: YouTubeSourceSettings) -> None:
        """Degraded stays Degraded until disposed."""
        provider = FakeProvider(settings, error=RuntimeError("boom"))

        await provider.initialize()
        await provider.initialize()

        assert provider.create_calls == 1
        assert isinstance(provider.state, Degraded)

    @pytest.mark.asyncio
    async def test_cancellation_returns_to_uninitialized(
        self, settings: YouTubeSourceSettings
    ) -> None:
        """A cancelled setup propagates and can be retried later."""
        provider = FakeProvider(settings, block=True)
        task = asyncio.create_task(provider.initialize())
        await provider.entered.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert isinstance(provider.state, Uninitialized)

        provider.block = False
        await provider.initialize()
        assert provider.is_available
        assert provider.create_calls == 2

    @pytest.mark.asyncio
    async def test_settings_loaded_before_setup(self, tmp_path: Path) -> None:
        """The persisted document is applied before _create_services runs."""
        (tmp_path / "YouTube.json").write_text('{"retry_count": 9}', encoding="utf-8")
        provider = FakeProvider(YouTubeSourceSettings(settings_dir=tmp_path))

        await provider.initialize()

        assert provider.settings.retry_count == 9


class TestServiceAccess:
    """Test the capability accessors outside Ready."""

    @pytest.mark.asyncio
    async def test_access_before_initialize_raises(self, tmp_path: Path) -> None:
        """Accessors name the provider and the capability."""
        provider = FakeProvider(YouTubeSourceSettings(settings_dir=tmp_path))

        with pytest.raises(UninitializedServiceError) as exc_info:
            _ = provider.search_service

        assert exc_info.value.source_name == "Fake"
        assert exc_info.value.capability == "Search"
        assert "Search" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_access_when_degraded_carries_reason(self, tmp_path: Path) -> None:
        """The degradation reason ends up in the error."""
        provider = FakeProvider(
            YouTubeSourceSettings(settings_dir=tmp_path), error=RuntimeError("auth rejected")
        )
        await provider.initialize()

        with pytest.raises(UninitializedServiceError) as exc_info:
            _ = provider.download_service

        assert exc_info.value.capability == "Download"
        assert exc_info.value.reason == "auth rejected"


class TestDispose:
    """Test BaseSourceProvider.dispose()."""

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, tmp_path: Path) -> None:
        """Resources are released once, the state stays Disposed."""
        provider = FakeProvider(YouTubeSourceSettings(settings_dir=tmp_path))
        await provider.initialize()

        await provider.dispose()
        await provider.dispose()

        assert isinstance(provider.state, Disposed)
        assert provider.release_calls == 1
        with pytest.raises(UninitializedServiceError):
            _ = provider.playlist_service

    @pytest.mark.asyncio
    async def test_dispose_without_initialize(self, tmp_path: Path) -> None:
        """Disposing a never-initialized provider is fine."""
        provider = FakeProvider(YouTubeSourceSettings(settings_dir=tmp_path))

        await provider.dispose()

        assert isinstance(provider.state, Disposed)

    @pytest.mark.asyncio
    async def test_initialize_after_dispose_is_ignored(self, tmp_path: Path) -> None:
        """Disposed is final."""
        provider = FakeProvider(YouTubeSourceSettings(settings_dir=tmp_path))
        await provider.dispose()

        await provider.initialize()

        assert provider.create_calls == 0
        assert isinstance(provider.state, Disposed)

    @pytest.mark.asyncio
    async def test_async_context_manager(self, tmp_path: Path) -> None:
        """async with initializes on enter and disposes on exit."""
        provider = FakeProvider(YouTubeSourceSettings(settings_dir=tmp_path))

        async with provider as active:
            assert active.is_available

        assert isinstance(provider.state, Disposed)
