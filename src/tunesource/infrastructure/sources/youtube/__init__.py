"""YouTube source backend."""

from tunesource.infrastructure.sources.youtube.provider import YouTubeSourceProvider
from tunesource.infrastructure.sources.youtube.settings import (
    AudioFormat,
    YouTubeSearchType,
    YouTubeSourceSettings,
)

__all__ = [
    "AudioFormat",
    "YouTubeSearchType",
    "YouTubeSourceProvider",
    "YouTubeSourceSettings",
]
