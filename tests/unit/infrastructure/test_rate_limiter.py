"""Tests for the token bucket rate limiter."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from pytest_mock import MockerFixture

from tunesource.infrastructure.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
    get_spotify_limiter,
    get_youtube_data_limiter,
)


class TestRateLimiter:
    """Test RateLimiter."""

    @pytest.mark.asyncio
    async def test_burst_within_capacity(self) -> None:
        limiter = RateLimiter(config=RateLimiterConfig(max_tokens=3, refill_rate=1.0))

        for _ in range(3):
            await limiter.acquire()

        assert limiter.available_tokens < 1.0

    @pytest.mark.asyncio
    async def test_waits_for_refill(self) -> None:
        limiter = RateLimiter(config=RateLimiterConfig(max_tokens=1, refill_rate=50.0))
        await limiter.acquire()

        loop = asyncio.get_running_loop()
        started = loop.time()
        await limiter.acquire()

        assert loop.time() - started >= 0.01

    @pytest.mark.asyncio
    async def test_retry_after_is_honoured(self, mocker: MockerFixture) -> None:
        sleep = mocker.patch(
            "tunesource.infrastructure.rate_limiter.asyncio.sleep", new_callable=AsyncMock
        )
        limiter = RateLimiter(config=RateLimiterConfig(max_backoff_seconds=60.0))

        waited = await limiter.back_off(retry_after=7)

        assert waited == 7.0
        sleep.assert_awaited_once_with(7.0)
        assert limiter.available_tokens < 1.0

    @pytest.mark.asyncio
    async def test_backoff_grows_and_is_capped(self, mocker: MockerFixture) -> None:
        mocker.patch("tunesource.infrastructure.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
        limiter = RateLimiter(
            config=RateLimiterConfig(
                initial_backoff_seconds=1.0, backoff_multiplier=2.0, max_backoff_seconds=3.0
            )
        )

        waits = [await limiter.back_off() for _ in range(4)]

        assert waits == [1.0, 2.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_retry_after_is_capped(self, mocker: MockerFixture) -> None:
        mocker.patch("tunesource.infrastructure.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
        limiter = RateLimiter(config=RateLimiterConfig(max_backoff_seconds=10.0))

        assert await limiter.back_off(retry_after=3600) == 10.0

    @pytest.mark.asyncio
    async def test_record_success_resets_backoff(self, mocker: MockerFixture) -> None:
        mocker.patch("tunesource.infrastructure.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
        limiter = RateLimiter(config=RateLimiterConfig(max_tokens=5, initial_backoff_seconds=1.0))
        await limiter.back_off()

        limiter.record_success()

        assert await limiter.back_off() == 1.0

    @pytest.mark.asyncio
    async def test_leaving_the_block_keeps_backoff(self, mocker: MockerFixture) -> None:
        """A 429 answered inside `async with` must still grow the next wait."""
        mocker.patch("tunesource.infrastructure.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
        limiter = RateLimiter(config=RateLimiterConfig(max_tokens=5, initial_backoff_seconds=1.0))
        waits: list[float] = []

        for _ in range(3):
            limiter._tokens = 5.0
            async with limiter:
                pass
            waits.append(await limiter.back_off())

        assert waits == [1.0, 2.0, 4.0]

    def test_singletons(self) -> None:
        assert get_spotify_limiter() is get_spotify_limiter()
        assert get_youtube_data_limiter() is get_youtube_data_limiter()
        assert get_spotify_limiter().name == "spotify"
        assert get_youtube_data_limiter().config.max_tokens == 5
