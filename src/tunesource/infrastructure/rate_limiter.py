"""Token bucket rate limiting for the backend web APIs.

Hey future me – both Spotify and the YouTube Data API punish bursts! Spotify answers
with 429 + Retry-After, YouTube burns quota. Every API client takes a token from its
backend's bucket before each request, calls back_off() when it still gets a 429 and
record_success() once a response is NOT a 429. Leaving the `async with` block says
nothing about the answer, so it never touches the backoff.

Usage:
    limiter = get_spotify_limiter()
    async with limiter:
        response = await client.get(url)

    if response.status_code == 429:
        await limiter.back_off(retry_after=int(response.headers["Retry-After"]))
    else:
        limiter.record_success()
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from types import TracebackType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimiterConfig:
    """Bucket size, refill speed and 429 backoff curve."""

    max_tokens: int = 10
    refill_rate: float = 2.0  # tokens per second
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 60.0
    backoff_multiplier: float = 2.0


# Spotify allows roughly 180 requests/minute. Its Retry-After values can be minutes long,
# so the cap is generous: ignoring them ends in a 429 loop.
SPOTIFY_LIMITS = RateLimiterConfig(max_tokens=10, refill_rate=2.0, max_backoff_seconds=600.0)

# Data API v3 is quota based, slow and steady
YOUTUBE_DATA_LIMITS = RateLimiterConfig(
    max_tokens=5, refill_rate=1.0, initial_backoff_seconds=2.0, max_backoff_seconds=120.0
)


class RateLimiter:
    """Async token bucket; a 429 empties it and grows the backoff."""

    def __init__(self, config: RateLimiterConfig | None = None, name: str = "default") -> None:
        self.config = config or RateLimiterConfig()
        self.name = name
        self._tokens = float(self.config.max_tokens)
        self._refilled_at = time.monotonic()
        self._backoff = self.config.initial_backoff_seconds
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        gained = (now - self._refilled_at) * self.config.refill_rate
        self._tokens = min(float(self.config.max_tokens), self._tokens + gained)
        self._refilled_at = now

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, sleeping until the bucket has one."""
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                wait_time = (1.0 - self._tokens) / self.config.refill_rate
            # Sleep without the lock so back_off() is never blocked behind a waiter
            logger.debug(f"RateLimiter[{self.name}]: waiting {wait_time:.2f}s for a token")
            await asyncio.sleep(wait_time)

    async def back_off(self, retry_after: int | None = None) -> float:
        """Sleep after a 429 and drain the bucket.

        Args:
            retry_after: Seconds from the Retry-After header; the growing backoff is used without it

        Returns:
            Seconds actually waited (capped at max_backoff_seconds)
        """
        async with self._lock:
            requested = float(retry_after) if retry_after is not None else self._backoff
            wait_time = min(requested, self.config.max_backoff_seconds)
            logger.warning(
                f"RateLimiter[{self.name}]: rate limited, waiting {wait_time:.1f}s "
                f"(backoff level {self._backoff:.1f}s)"
            )
            self._backoff = min(
                self._backoff * self.config.backoff_multiplier, self.config.max_backoff_seconds
            )
            self._tokens = 0.0

        await asyncio.sleep(wait_time)
        return wait_time

    def record_success(self) -> None:
        """A non-429 response came back: the next 429 starts from the initial backoff again."""
        self._backoff = self.config.initial_backoff_seconds

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None


# One bucket per backend API, shared by every client instance
@lru_cache
def get_spotify_limiter() -> RateLimiter:
    return RateLimiter(SPOTIFY_LIMITS, name="spotify")


@lru_cache
def get_youtube_data_limiter() -> RateLimiter:
    return RateLimiter(YOUTUBE_DATA_LIMITS, name="youtube_data")


__all__ = [
    "SPOTIFY_LIMITS",
    "YOUTUBE_DATA_LIMITS",
    "RateLimiter",
    "RateLimiterConfig",
    "get_spotify_limiter",
    "get_youtube_data_limiter",
]
