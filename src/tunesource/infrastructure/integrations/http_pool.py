"""One shared httpx.AsyncClient for every backend.

Hey future me - YouTube stream downloads, the Spotify Web API and the YouTube Data
API all borrow THIS client unless a caller injects its own. A client per request
would throw away keep-alive and TLS sessions, and a playlist fetch fires dozens of
paged requests.

    HttpClientPool.configure(settings.http)    # source_lifespan, before any request
    client = await HttpClientPool.get_client()
    ...
    await HttpClientPool.close()               # source_lifespan, at shutdown
"""

import asyncio
import logging
from typing import ClassVar

import httpx

from tunesource.config import HttpSettings

logger = logging.getLogger(__name__)


def build_client(config: HttpSettings) -> httpx.AsyncClient:
    """An AsyncClient with the pool's timeouts and connection limits."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        limits=httpx.Limits(
            max_keepalive_connections=config.max_keepalive,
            max_connections=config.max_connections,
        ),
        http2=True,
        # googlevideo stream URLs redirect regularly
        follow_redirects=True,
    )


class HttpClientPool:
    """Lazily created, process-wide AsyncClient."""

    _client: ClassVar[httpx.AsyncClient | None] = None
    _config: ClassVar[HttpSettings | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    @classmethod
    def configure(cls, config: HttpSettings) -> None:
        """Set the limits for the NEXT client; an open client keeps its own."""
        cls._config = config

    @classmethod
    def _guard(cls) -> asyncio.Lock:
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_client(cls) -> httpx.AsyncClient:
        async with cls._guard():
            if cls._client is None or cls._client.is_closed:
                config = cls._config or HttpSettings()
                cls._client = build_client(config)
                logger.info(
                    f"HTTP client pool opened (timeout={config.timeout:.1f}s, "
                    f"max_conn={config.max_connections}, keepalive={config.max_keepalive})"
                )
            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client; get_client() afterwards opens a new one."""
        async with cls._guard():
            client, cls._client = cls._client, None
        if client is not None and not client.is_closed:
            await client.aclose()
            logger.info("HTTP client pool closed")

    @classmethod
    def is_open(cls) -> bool:
        return cls._client is not None and not cls._client.is_closed
