"""Domain ports (interfaces) for dependency inversion."""

from tunesource.domain.ports.download import AudioStream, IDownloadService
from tunesource.domain.ports.metadata import IMetadataService
from tunesource.domain.ports.playlist import IPlaylistService
from tunesource.domain.ports.search import ISearchService
from tunesource.domain.ports.source import (
    ISourceProvider,
    ISourceSettings,
    SettingField,
    SourceError,
    SourceServices,
)

__all__ = [
    "AudioStream",
    "IDownloadService",
    "IMetadataService",
    "IPlaylistService",
    "ISearchService",
    "ISourceProvider",
    "ISourceSettings",
    "SettingField",
    "SourceError",
    "SourceServices",
]
