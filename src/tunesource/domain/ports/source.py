"""
Source Provider Interface for TuneSource.

Hey future me – this is the HEART of the backend architecture!
Every music source (YouTube, Spotify, ...) implements ISourceProvider and hands
out four narrow capability services. The consumer never touches a backend client
directly, only these ports.

Checklist for a new backend:
1. Subclass BaseSourceSettings (pydantic fields with category/label metadata)
2. Implement the four capability services against the backend's client
3. Subclass BaseSourceProvider and build the services in _create_services()
4. Register the provider in create_default_registry()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tunesource.domain.ports.download import IDownloadService
from tunesource.domain.ports.metadata import IMetadataService
from tunesource.domain.ports.playlist import IPlaylistService
from tunesource.domain.ports.search import ISearchService

if TYPE_CHECKING:
    from tunesource.domain.entities.source_state import ProviderState


# Hey future me – SourceError is the UNIFIED exception for backend transport failures!
# Wrap httpx / yt-dlp exceptions in SourceError when a targeted lookup fails, so the
# application layer handles every backend the same way.
@dataclass
class SourceError(Exception):
    """Unified error for failed backend operations."""

    message: str
    source: str
    error_code: str | None = None  # Backend-specific error code (HTTP status, yt-dlp error)
    original_error: Exception | None = None
    recoverable: bool = False  # Can the operation be retried?

    def __str__(self) -> str:
        """Return human-readable error message."""
        base = f"[{self.source}] {self.message}"
        if self.error_code:
            base = f"{base} (code: {self.error_code})"
        return base


@dataclass(frozen=True)
class SettingField:
    """Describes one persisted settings field for a settings UI."""

    name: str
    label: str
    category: str
    default: Any
    description: str | None = None


class ISourceSettings(ABC):
    """Per-backend settings persisted to one JSON document.

    Every implementation also carries a boolean `is_enabled` field.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Backend name, also used as the settings file name."""
        ...

    @property
    @abstractmethod
    def settings_file(self) -> Path:
        """Location of the persisted JSON document."""
        ...

    @abstractmethod
    async def load(self) -> bool:
        """Overwrite current values from disk.

        Missing or corrupt files keep the current values.

        Returns:
            True if values were loaded from disk
        """
        ...

    @abstractmethod
    async def save(self) -> None:
        """Persist all fields.

        Raises:
            SettingsPersistenceError: If the document cannot be written
        """
        ...

    @abstractmethod
    async def reset_to_defaults(self) -> None:
        """Replace every persisted field with its default, then save."""
        ...

    @classmethod
    @abstractmethod
    def describe_fields(cls) -> list[SettingField]:
        """Return the explicit schema of persisted fields."""
        ...


@dataclass(frozen=True)
class SourceServices:
    """The four capability services a ready provider hands out."""

    search: ISearchService
    metadata: IMetadataService
    download: IDownloadService
    playlist: IPlaylistService


class ISourceProvider(ABC):
    """
    Abstract base for all music source providers.

    Lifecycle: Uninitialized -> Initializing -> Ready | Degraded -> Disposed.
    Service accessors raise UninitializedServiceError unless the provider is Ready.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique backend name (e.g. "YouTube")."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""
        ...

    @property
    @abstractmethod
    def settings(self) -> ISourceSettings:
        """The provider's settings object."""
        ...

    @property
    @abstractmethod
    def state(self) -> "ProviderState":
        """Current lifecycle state."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """True only when Ready."""
        ...

    @property
    @abstractmethod
    def search_service(self) -> ISearchService: ...

    @property
    @abstractmethod
    def metadata_service(self) -> IMetadataService: ...

    @property
    @abstractmethod
    def download_service(self) -> IDownloadService: ...

    @property
    @abstractmethod
    def playlist_service(self) -> IPlaylistService: ...

    @abstractmethod
    async def initialize(self) -> None:
        """Run backend setup once. Never raises except for cancellation."""
        ...

    @abstractmethod
    async def dispose(self) -> None:
        """Release backend resources. Idempotent."""
        ...
