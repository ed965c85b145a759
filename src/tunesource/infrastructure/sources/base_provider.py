"""
Base class for source providers: the lifecycle state machine.

Hey future me – this is where "one broken backend must not abort startup" lives!

    Uninitialized -> Initializing -> Ready(services) | Degraded(reason) -> Disposed

- initialize() runs setup exactly ONCE, even if ten tasks call it at the same
  time (asyncio.Lock + state check). Auth/network/config failures end in
  Degraded and are logged at error level, they never propagate.
- Cancellation is the one exception: it propagates, and the state goes back to
  Uninitialized so the caller can retry later. A cancelled startup is not a
  broken backend.
- dispose() is idempotent and always ends in Disposed.
- The *_service accessors only work in Ready, otherwise they raise
  UninitializedServiceError naming the capability.

Subclasses implement _create_services() (and optionally _release()).
"""

import asyncio
import logging
from abc import abstractmethod
from types import TracebackType
from typing import Generic, TypeVar

from tunesource.domain.entities.source_state import (
    Degraded,
    Disposed,
    Initializing,
    ProviderState,
    Ready,
    Uninitialized,
)
from tunesource.domain.exceptions import UninitializedServiceError
from tunesource.domain.ports import (
    IDownloadService,
    IMetadataService,
    IPlaylistService,
    ISearchService,
    ISourceProvider,
    SourceServices,
)
from tunesource.infrastructure.sources.base_settings import BaseSourceSettings

logger = logging.getLogger(__name__)

SettingsT = TypeVar("SettingsT", bound=BaseSourceSettings)


class BaseSourceProvider(ISourceProvider, Generic[SettingsT]):
    """Lifecycle implementation shared by every backend."""

    def __init__(self, settings: SettingsT) -> None:
        self._settings = settings
        self._state: ProviderState = Uninitialized()
        self._init_lock = asyncio.Lock()

    @property
    def settings(self) -> SettingsT:
        return self._settings

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def is_available(self) -> bool:
        return isinstance(self._state, Ready)

    def _require_services(self, capability: str) -> SourceServices:
        state = self._state
        if isinstance(state, Ready):
            return state.services
        reason = state.reason if isinstance(state, Degraded) else state.status.value
        raise UninitializedServiceError(self.name, capability, reason)

    @property
    def search_service(self) -> ISearchService:
        return self._require_services("Search").search

    @property
    def metadata_service(self) -> IMetadataService:
        return self._require_services("Metadata").metadata

    @property
    def download_service(self) -> IDownloadService:
        return self._require_services("Download").download

    @property
    def playlist_service(self) -> IPlaylistService:
        return self._require_services("Playlist").playlist

    @abstractmethod
    async def _create_services(self) -> SourceServices:
        """Authenticate / connect and build the four capability services.

        Settings are already loaded when this runs. Raise any exception to end
        up Degraded; the message becomes the degradation reason.
        """
        ...

    async def _release(self, services: SourceServices | None) -> None:
        """Release backend resources (clients, sessions). Default: nothing."""
        return None

    async def initialize(self) -> None:
        async with self._init_lock:
            if not isinstance(self._state, Uninitialized):
                logger.debug(f"{self.name}: initialize() ignored in state {self._state.status.value}")
                return

            self._state = Initializing()
            logger.info(f"Initializing source provider: {self.name}")
            try:
                await self._settings.load()
                services = await self._create_services()
            except asyncio.CancelledError:
                logger.warning(f"{self.name}: initialization cancelled")
                self._state = Uninitialized()
                raise
            except Exception as e:
                logger.error(f"{self.name}: initialization failed, source degraded: {e}", exc_info=True)
                self._state = Degraded(reason=str(e) or e.__class__.__name__)
                return

            self._state = Ready(services=services)
            logger.info(f"Source provider ready: {self.name}")

    async def dispose(self) -> None:
        async with self._init_lock:
            if isinstance(self._state, Disposed):
                return
            services = self._state.services if isinstance(self._state, Ready) else None
            self._state = Disposed()

        try:
            await self._release(services)
        except Exception as e:
            logger.error(f"{self.name}: error while releasing resources: {e}")
        logger.info(f"Source provider disposed: {self.name}")

    async def __aenter__(self) -> "BaseSourceProvider[SettingsT]":
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.dispose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} state={self._state.status.value}>"
