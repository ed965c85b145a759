"""AudioStream implementations: live HTTP response or local file."""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

import httpx

from tunesource.domain.ports.download import AudioStream

logger = logging.getLogger(__name__)


class HttpAudioStream(AudioStream):
    """Bytes straight from an open streaming httpx response."""

    def __init__(self, response: httpx.Response, chunk_size: int = 8192) -> None:
        self._response = response
        self._chunk_size = chunk_size

    @property
    def content_length(self) -> int:
        try:
            return int(self._response.headers.get("Content-Length", 0))
        except ValueError:
            return 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes(self._chunk_size):
            if chunk:
                yield chunk

    async def aclose(self) -> None:
        await self._response.aclose()


class FileAudioStream(AudioStream):
    """Bytes from a local file, read in a worker thread."""

    def __init__(self, path: Path, chunk_size: int = 8192, delete_on_close: bool = False) -> None:
        self.path = path
        self._chunk_size = chunk_size
        self._delete_on_close = delete_on_close
        self._handle: BinaryIO | None = None
        self._closed = False

    @property
    def content_length(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        if self._handle is None:
            self._handle = await asyncio.to_thread(self.path.open, "rb")
        while True:
            chunk = await asyncio.to_thread(self._handle.read, self._chunk_size)
            if not chunk:
                break
            yield chunk

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        if self._delete_on_close:
            try:
                await asyncio.to_thread(self.path.unlink, True)
            except OSError as e:
                logger.warning(f"Could not delete temporary audio file {self.path}: {e}")


class EmptyAudioStream(AudioStream):
    """A stream with no bytes, returned when a subprocess download failed."""

    @property
    def content_length(self) -> int:
        return 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        return
        yield b""  # pragma: no cover - makes this an async generator

    async def aclose(self) -> None:
        return None
