"""Spotify source backend."""

from tunesource.infrastructure.sources.spotify.provider import SpotifySourceProvider
from tunesource.infrastructure.sources.spotify.settings import (
    SpotifyQuality,
    SpotifySearchType,
    SpotifySourceSettings,
)

__all__ = [
    "SpotifyQuality",
    "SpotifySearchType",
    "SpotifySourceProvider",
    "SpotifySourceSettings",
]
