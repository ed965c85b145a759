"""Coalesce concurrent downloads of the same stream.

Hey future me - two queue entries for the same song used to start two yt-dlp
processes writing two temp files. Now the first caller (the leader) runs the
download, everyone else arriving while it is in flight awaits the same result.

Followers don't get progress events, only the leader's callback sees them.
Cancelling the leader cancels the shared download (and kills its subprocess),
followers then see CancelledError too. Cancelling a follower only stops that
follower from waiting.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """At most one in-flight task per key."""

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[T]] = {}

    def is_inflight(self, key: str) -> bool:
        return key in self._inflight

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Run factory() for key, or join the run already in flight.

        Args:
            key: Deduplication key (stream URL)
            factory: Creates the awaitable doing the actual work

        Returns:
            The shared result
        """
        task = self._inflight.get(key)
        if task is not None:
            logger.debug(f"Joining in-flight download for {key}")
            return await asyncio.shield(task)

        async def _runner() -> T:
            return await factory()

        task = asyncio.create_task(_runner())
        self._inflight[key] = task

        def _forget(done: asyncio.Task[T]) -> None:
            if self._inflight.get(key) is done:
                del self._inflight[key]

        task.add_done_callback(_forget)
        # Awaiting the task directly: cancelling the leader cancels the work
        return await task
