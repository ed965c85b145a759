"""Startup and shutdown of the source layer.

Usage:
    async with source_lifespan() as registry:
        search = MultiSourceSearchService(registry)
        songs = await search.search("daft punk")
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from tunesource.config import Settings, get_settings
from tunesource.domain.exceptions import ConfigurationError
from tunesource.infrastructure.integrations.http_pool import HttpClientPool
from tunesource.infrastructure.observability import configure_logging
from tunesource.infrastructure.sources.registry import SourceRegistry, create_default_registry

logger = logging.getLogger(__name__)


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# The try/finally makes sure providers are disposed and the shared HTTP pool is closed even
# when the body raises. A Degraded source does NOT abort startup, only a broken data dir does.
@asynccontextmanager
async def source_lifespan(
    settings: Settings | None = None,
    registry: SourceRegistry | None = None,
    configure_logs: bool = True,
) -> AsyncGenerator[SourceRegistry, None]:
    """Source layer lifespan manager.

    Handles:
    - Logging configuration
    - Directory creation (settings, playlists, downloads)
    - Provider registration and concurrent initialization
    - Provider disposal and HTTP pool shutdown

    Args:
        settings: Process settings, defaults to get_settings()
        registry: Pre-populated registry, defaults to create_default_registry()
        configure_logs: Set False when the host application configures logging itself

    Raises:
        ConfigurationError: If the application data directories cannot be created
    """
    settings = settings or get_settings()

    if configure_logs:
        configure_logging(
            log_level=settings.log_level,
            json_format=settings.observability.log_json_format,
            app_name=settings.app_name,
        )
    logger.info("Starting sources: %s", settings.app_name)

    try:
        settings.ensure_directories()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create application directories under '{settings.app_dir}': {exc}. "
            "Set TUNESOURCE_APP_DATA_DIR to a writable location."
        ) from exc

    HttpClientPool.configure(settings.http)
    registry = registry or create_default_registry(settings)

    try:
        await registry.initialize_all()
        yield registry
    finally:
        logger.info("Shutting down sources...")
        await registry.dispose_all()
        await HttpClientPool.close()
        logger.info("Sources shut down")
