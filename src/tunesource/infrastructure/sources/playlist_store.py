"""Local playlist store: one JSON document per playlist.

Layout:
    <app-data>/<app-name>/Playlists/<backend>/<playlist-id>.json

Playlists are (de)serialized with a pydantic TypeAdapter straight from the
domain dataclasses, so enums and nested streams round-trip without a second
schema to keep in sync.
"""

import asyncio
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from tunesource.domain.exceptions import ValidationException
from tunesource.domain.models import Playlist

logger = logging.getLogger(__name__)

_PLAYLIST_ADAPTER: TypeAdapter[Playlist] = TypeAdapter(Playlist)


class LocalPlaylistStore:
    """Reads and writes playlist JSON files in one directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, playlist_id: str) -> Path:
        """File path of a playlist.

        Raises:
            ValidationException: If the id is empty or not a plain file name
        """
        if not playlist_id or Path(playlist_id).name != playlist_id or playlist_id in {".", ".."}:
            raise ValidationException(f"Invalid playlist id: {playlist_id!r}")
        return self.directory / f"{playlist_id}.json"

    async def load(self, playlist_id: str) -> Playlist | None:
        """Load one playlist, None when missing or unreadable."""
        path = self.path_for(playlist_id)
        if not await asyncio.to_thread(path.exists):
            return None
        try:
            raw = await asyncio.to_thread(path.read_bytes)
            return _PLAYLIST_ADAPTER.validate_json(raw)
        except (OSError, ValidationError, ValueError) as e:
            logger.error(f"Failed to read local playlist {path}: {e}")
            return None

    async def load_all(self) -> list[Playlist]:
        """Load every readable playlist, sorted by name."""

        def _list() -> list[Path]:
            if not self.directory.is_dir():
                return []
            return sorted(self.directory.glob("*.json"))

        playlists: list[Playlist] = []
        for path in await asyncio.to_thread(_list):
            playlist = await self.load(path.stem)
            if playlist is not None:
                playlists.append(playlist)
        playlists.sort(key=lambda p: p.name.lower())
        return playlists

    async def save(self, playlist: Playlist) -> Path:
        """Write a playlist (pretty printed).

        Raises:
            OSError: If the file cannot be written
        """
        path = self.path_for(playlist.id)
        payload = _PLAYLIST_ADAPTER.dump_json(playlist, indent=2)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)

        await asyncio.to_thread(_write)
        return path

    async def delete(self, playlist_id: str) -> bool:
        """Delete a playlist file, False if it did not exist."""
        path = self.path_for(playlist_id)

        def _delete() -> bool:
            if not path.exists():
                return False
            path.unlink()
            return True

        return await asyncio.to_thread(_delete)
