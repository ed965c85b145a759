"""Lifecycle states of a source provider.

The state is a tagged union: only Ready carries services, so there is no
"initialized flag plus nullable services" combination that can drift apart.

    Uninitialized -> Initializing -> Ready(services) | Degraded(reason) -> Disposed
"""

from dataclasses import dataclass
from enum import Enum

from tunesource.domain.ports.source import SourceServices


class ProviderStatus(str, Enum):
    """Flat status name of a ProviderState, handy for logs and UIs."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class Uninitialized:
    status = ProviderStatus.UNINITIALIZED


@dataclass(frozen=True)
class Initializing:
    status = ProviderStatus.INITIALIZING


@dataclass(frozen=True)
class Ready:
    services: SourceServices
    status = ProviderStatus.READY


@dataclass(frozen=True)
class Degraded:
    """Setup failed (auth, network, config). Services stay unavailable."""

    reason: str
    status = ProviderStatus.DEGRADED


@dataclass(frozen=True)
class Disposed:
    status = ProviderStatus.DISPOSED


ProviderState = Uninitialized | Initializing | Ready | Degraded | Disposed


__all__ = [
    "Degraded",
    "Disposed",
    "Initializing",
    "ProviderState",
    "ProviderStatus",
    "Ready",
    "Uninitialized",
]
