"""
Multi-Source search, metadata and download services.

Hey future me - these services aggregate ALL available sources behind one call!

    MultiSourceSearchService
        ↓
    [YouTube, Spotify] (registry.available())
        ↓
    Fan-out with asyncio.gather, tag + merge

A source that fails, is disabled, or is still Degraded is skipped and logged,
the caller gets whatever the other sources found. Only when NOTHING resolves
do the targeted lookups raise.

Routing by id shape (when a song's source is unknown):
- 11 chars [A-Za-z0-9_-]  -> YouTube video id
- 22 chars alphanumeric    -> Spotify track id
"""

import asyncio
import logging
import re
from dataclasses import replace
from pathlib import Path

from tunesource.domain.exceptions import EntityNotFoundException, ToolMissingError
from tunesource.domain.models import (
    AudioStreamInfo,
    DownloadPhase,
    DownloadProgressEvent,
    Playlist,
    ProgressCallback,
    Song,
)
from tunesource.domain.ports import ISourceProvider
from tunesource.infrastructure.observability.logging import log_context, new_correlation_id
from tunesource.infrastructure.sources.progress import ProgressReporter
from tunesource.infrastructure.sources.registry import SourceRegistry
from tunesource.infrastructure.sources.spotify.settings import SPOTIFY_SOURCE_NAME
from tunesource.infrastructure.sources.youtube.settings import YOUTUBE_SOURCE_NAME

logger = logging.getLogger(__name__)

_YOUTUBE_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")
_SPOTIFY_ID = re.compile(r"^[A-Za-z0-9]{22}$")


class _StreamUnavailable(Exception):
    """A fallback provider has no stream for the song; not a download failure."""


def guess_source(song_id: str) -> str | None:
    """Guess the backend of an id from its shape, None when ambiguous."""
    if _YOUTUBE_ID.match(song_id):
        return YOUTUBE_SOURCE_NAME
    if _SPOTIFY_ID.match(song_id):
        return SPOTIFY_SOURCE_NAME
    return None


def _ordered_providers(
    registry: SourceRegistry, preferred: str | None
) -> list[ISourceProvider]:
    """Available providers, the preferred one first."""
    providers = registry.available()
    if preferred:
        providers.sort(key=lambda p: p.name != preferred)
    return providers


def _forward_to(reporter: ProgressReporter) -> ProgressCallback:
    """Callback feeding one provider's events into the caller's reporter.

    Events are re-issued for the reporter's Song, so candidates built for a
    fallback source never leak to the caller. FAILED is dropped here.
    """

    def forward(event: DownloadProgressEvent) -> None:
        if event.phase == DownloadPhase.STARTED:
            reporter.start(event.status or "Starting download...")
        elif event.phase == DownloadPhase.PROGRESS:
            reporter.progress(event.bytes_downloaded, event.total_bytes, event.status or None)
        elif event.phase == DownloadPhase.COMPLETED:
            reporter.complete(event.total_bytes, event.status or "Download completed")

    return forward


class MultiSourceSearchService:
    """Search every available source concurrently."""

    def __init__(self, registry: SourceRegistry) -> None:
        self._registry = registry

    async def search(self, query: str, max_results: int = 50) -> list[Song]:
        """Search all sources, per-source limit max(1, max_results // n).

        Returns:
            Songs grouped by source in registry order, each tagged with its source
        """
        providers = self._registry.available()
        if not providers:
            logger.warning(f"No source available for search '{query}'")
            return []

        per_source = max(1, max_results // len(providers))
        tasks = [
            asyncio.create_task(
                p.search_service.search(query, per_source), name=f"{p.name}_search"
            )
            for p in providers
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        songs: list[Song] = []
        for provider, result in zip(providers, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"{provider.name} search failed for '{query}': {result}")
                continue
            for song in result:
                song.source = song.source or provider.name
            songs.extend(result)

        logger.info(f"Multi-source search '{query}': {len(songs)} songs from {len(providers)} sources")
        return songs

    async def search_playlists(self, query: str, max_results: int = 20) -> list[Playlist]:
        """Search playlists on all sources."""
        providers = self._registry.available()
        if not providers:
            return []

        per_source = max(1, max_results // len(providers))
        results = await asyncio.gather(
            *(p.search_service.search_playlists(query, per_source) for p in providers),
            return_exceptions=True,
        )

        playlists: list[Playlist] = []
        for provider, result in zip(providers, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"{provider.name} playlist search failed for '{query}': {result}")
                continue
            for playlist in result:
                playlist.source = playlist.source or provider.name
            playlists.extend(result)
        return playlists


class MultiSourceMetadataService:
    """Resolve song metadata and streams on whichever source owns the id."""

    def __init__(self, registry: SourceRegistry) -> None:
        self._registry = registry

    async def get_song_metadata(self, song_id: str, source: str | None = None) -> Song:
        """
        Raises:
            EntityNotFoundException: If no available source resolves the id
        """
        for provider in _ordered_providers(self._registry, source or guess_source(song_id)):
            try:
                song = await provider.metadata_service.get_song_metadata(song_id)
            except Exception as e:
                logger.debug(f"{provider.name} could not resolve song {song_id}: {e}")
                continue
            song.source = song.source or provider.name
            return song
        raise EntityNotFoundException("Song", song_id)

    async def get_best_audio_stream(self, song: Song) -> AudioStreamInfo:
        """Best stream for a song, preferring the song's own source.

        Raises:
            EntityNotFoundException: If no available source has a stream
        """
        for provider in _ordered_providers(self._registry, song.source or guess_source(song.id)):
            try:
                return await provider.metadata_service.get_best_audio_stream(song.id)
            except Exception as e:
                logger.debug(f"{provider.name} has no stream for {song.id}: {e}")
        raise EntityNotFoundException("AudioStream", song.id)


class MultiSourceDownloadService:
    """Download a song through its own source, falling back to the others."""

    def __init__(self, registry: SourceRegistry) -> None:
        self._registry = registry

    # Hey future me, the caller sees ONE download no matter how many sources we try.
    # Provider events go through a single ProgressReporter bound to the caller's Song:
    # STARTED once, bytes never going backwards, and the provider's own FAILED is held
    # back because the next source may still succeed. FAILED is sent once every source
    # is exhausted.
    async def download_audio(
        self,
        song: Song,
        on_progress: ProgressCallback | None = None,
    ) -> Path | None:
        """
        Returns:
            Path of the downloaded file, None if every source failed

        Raises:
            ToolMissingError: If the only failures were a missing yt-dlp
        """
        with log_context(new_correlation_id()) as correlation_id:
            logger.info(f"Download {correlation_id} started for '{song.display_name}'")

            reporter = ProgressReporter(song, on_progress)
            forward = _forward_to(reporter)
            tool_missing: ToolMissingError | None = None
            other_failure = False
            preferred = song.source or guess_source(song.id)
            for provider in _ordered_providers(self._registry, preferred):
                with log_context(source=provider.name):
                    try:
                        path = await self._download_with(provider, song, preferred, forward)
                    except _StreamUnavailable as e:
                        logger.debug(f"{provider.name} cannot serve {song.id}: {e}")
                        continue
                    except ToolMissingError as e:
                        logger.error(f"{provider.name}: {e}")
                        tool_missing = e
                        continue
                    except asyncio.CancelledError:
                        reporter.fail("Download cancelled")
                        raise
                    except Exception as e:
                        logger.error(f"{provider.name} download failed for '{song.display_name}': {e}")
                        other_failure = True
                        continue

                if path is not None:
                    logger.info(f"Download {correlation_id} finished via {provider.name}: {path}")
                    reporter.complete()
                    return path
                other_failure = True

            logger.warning(f"Download {correlation_id} failed on every source for '{song.display_name}'")
            if tool_missing is not None and not other_failure:
                reporter.fail(f"Download failed: {tool_missing}")
                raise tool_missing
            reporter.fail("Download failed on every source")
            return None

    @staticmethod
    async def _download_with(
        provider: ISourceProvider,
        song: Song,
        preferred: str | None,
        on_progress: ProgressCallback | None,
    ) -> Path | None:
        """Download through one provider.

        Raises:
            _StreamUnavailable: If the provider cannot resolve a stream for the song
        """
        if provider.name == preferred and song.selected_stream is not None:
            candidate = song
        else:
            # A foreign stream means nothing to another backend
            try:
                stream = await provider.metadata_service.get_best_audio_stream(song.id)
            except Exception as e:
                raise _StreamUnavailable(str(e)) from e
            candidate = replace(song, source=provider.name, selected_stream=stream)
        return await provider.download_service.download_audio(candidate, on_progress)
