"""Domain entities."""

from tunesource.domain.entities.source_state import (
    Degraded,
    Disposed,
    Initializing,
    ProviderState,
    ProviderStatus,
    Ready,
    Uninitialized,
)

__all__ = [
    "Degraded",
    "Disposed",
    "Initializing",
    "ProviderState",
    "ProviderStatus",
    "Ready",
    "Uninitialized",
]
