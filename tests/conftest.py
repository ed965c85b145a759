"""Shared fixtures for TuneSource tests."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from tunesource.config import DownloadSettings, Settings
from tunesource.domain.models import AudioStreamInfo, DownloadProgressEvent, Song
from tunesource.domain.ports import (
    IDownloadService,
    IMetadataService,
    IPlaylistService,
    ISearchService,
    SourceServices,
)
from tunesource.infrastructure.sources.base_provider import BaseSourceProvider
from tunesource.infrastructure.sources.youtube.settings import YouTubeSourceSettings


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    """Process settings rooted in a temporary directory."""
    return Settings(
        _env_file=None,
        app_data_dir=tmp_path / "appdata",
        download=DownloadSettings(download_dir=tmp_path / "downloads"),
    )


@pytest.fixture
def song() -> Song:
    """A YouTube song with a selected m4a stream."""
    return Song(
        id="dQw4w9WgXcQ",
        title="Never Gonna Give You Up",
        artist="Rick Astley",
        source="YouTube",
        selected_stream=AudioStreamInfo(
            url="https://media.example.com/audio.m4a",
            bitrate=128,
            extension="m4a",
            format_id="140",
            video_codec="none",
        ),
    )


@pytest.fixture
def progress_events() -> list[DownloadProgressEvent]:
    """Collects progress events; pass events.append as the callback."""
    return []


class StubProvider(BaseSourceProvider[YouTubeSourceSettings]):
    """Provider with mocked capability services and a configurable name."""

    def __init__(self, name: str, settings_dir: Path, error: Exception | None = None) -> None:
        settings = YouTubeSourceSettings(settings_dir=settings_dir)
        super().__init__(settings)
        self._name = name
        self.error = error
        self.services = SourceServices(
            search=AsyncMock(spec=ISearchService),
            metadata=AsyncMock(spec=IMetadataService),
            download=AsyncMock(spec=IDownloadService),
            playlist=AsyncMock(spec=IPlaylistService),
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"Stub {self._name} source"

    async def _create_services(self) -> SourceServices:
        if self.error is not None:
            raise self.error
        return self.services


@pytest.fixture
def make_provider(tmp_path: Path) -> Callable[..., StubProvider]:
    """Factory for StubProvider instances sharing a temporary settings dir."""

    def _make(name: str, error: Exception | None = None) -> StubProvider:
        return StubProvider(name, tmp_path / "Sources", error=error)

    return _make
