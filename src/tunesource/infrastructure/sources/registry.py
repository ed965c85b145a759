"""
Source Registry for TuneSource providers.

Hey future me – this is the CENTRAL place where backends are looked up by name!
Providers are registered explicitly at startup (create_default_registry), there is
no module scanning or plugin discovery magic.

Usage:
    registry = create_default_registry()
    await registry.initialize_all()

    youtube = registry.require("YouTube")
    songs = await youtube.search_service.search("daft punk")

    for provider in registry.available():
        ...

Not thread-safe. Fine for asyncio (single event loop).
"""

import asyncio
import logging
from collections.abc import Iterator

from tunesource.config import Settings, get_settings
from tunesource.domain.ports import ISourceProvider

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Maps backend name -> provider instance."""

    def __init__(self) -> None:
        self._providers: dict[str, ISourceProvider] = {}

    def register(self, provider: ISourceProvider) -> bool:
        """
        Register a provider.

        Hey future me – a duplicate name is ignored with a warning, the FIRST
        registration wins. Two providers fighting over one settings file is worse.

        Returns:
            True if registered, False if the name was taken
        """
        if provider.name in self._providers:
            logger.warning(f"Source provider '{provider.name}' is already registered, ignoring duplicate")
            return False
        self._providers[provider.name] = provider
        logger.info(f"Registered source provider: {provider.name}")
        return True

    def get(self, name: str) -> ISourceProvider | None:
        """Get a provider by name, None if not registered."""
        return self._providers.get(name)

    def require(self, name: str) -> ISourceProvider:
        """
        Get a provider, raising if not found.

        Raises:
            KeyError: If no provider with that name is registered
        """
        provider = self._providers.get(name)
        if provider is None:
            raise KeyError(f"No source provider registered for {name}")
        return provider

    def unregister(self, name: str) -> ISourceProvider | None:
        """Remove a provider (without disposing it)."""
        return self._providers.pop(name, None)

    def all(self) -> Iterator[ISourceProvider]:
        """Iterate over every registered provider in registration order."""
        yield from self._providers.values()

    @property
    def names(self) -> list[str]:
        return list(self._providers.keys())

    def is_registered(self, name: str) -> bool:
        return name in self._providers

    def enabled(self) -> list[ISourceProvider]:
        """Providers whose settings have is_enabled set."""
        return [p for p in self._providers.values() if getattr(p.settings, "is_enabled", True)]

    def available(self) -> list[ISourceProvider]:
        """Enabled providers that are Ready."""
        return [p for p in self.enabled() if p.is_available]

    # Listen up, providers initialize CONCURRENTLY: a slow Spotify auth must not delay YouTube.
    # Provider.initialize() already swallows ordinary failures, anything still escaping here is
    # a bug and gets logged. Cancellation is re-raised so shutdown during startup works.
    async def initialize_all(self) -> None:
        """Initialize every registered provider."""
        providers = list(self._providers.values())
        if not providers:
            return

        results = await asyncio.gather(
            *(provider.initialize() for provider in providers),
            return_exceptions=True,
        )
        for provider, result in zip(providers, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error initializing {provider.name}: {result}")

        ready = [p.name for p in providers if p.is_available]
        logger.info(f"Source providers ready: {ready or 'none'} ({len(ready)}/{len(providers)})")

    async def dispose_all(self) -> None:
        """Dispose every registered provider, continuing past failures."""
        for provider in list(self._providers.values()):
            try:
                await provider.dispose()
            except Exception as e:
                logger.error(f"Error disposing {provider.name}: {e}")

    def clear(self) -> None:
        """
        Remove all providers.

        Hey future me – only for tests! Providers are not disposed.
        """
        self._providers.clear()


def create_default_registry(settings: Settings | None = None) -> SourceRegistry:
    """Build a registry with the built-in YouTube and Spotify sources."""
    # Imported here: the backends import this module's siblings
    from tunesource.infrastructure.sources.spotify import SpotifySourceProvider
    from tunesource.infrastructure.sources.youtube import YouTubeSourceProvider

    app_settings = settings or get_settings()
    registry = SourceRegistry()
    registry.register(YouTubeSourceProvider.from_app_settings(app_settings))
    registry.register(SpotifySourceProvider.from_app_settings(app_settings))
    return registry


# Global singleton instance
_default_registry: SourceRegistry | None = None


def get_source_registry() -> SourceRegistry:
    """
    Get the global source registry singleton.

    Returns:
        The global SourceRegistry (empty until something registers providers)
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = SourceRegistry()
    return _default_registry


__all__ = [
    "SourceRegistry",
    "create_default_registry",
    "get_source_registry",
]
