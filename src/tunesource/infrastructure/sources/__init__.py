"""Music source backends and the shared provider machinery."""

from tunesource.infrastructure.sources.base_provider import BaseSourceProvider
from tunesource.infrastructure.sources.base_settings import BaseSourceSettings, setting_field
from tunesource.infrastructure.sources.registry import (
    SourceRegistry,
    create_default_registry,
    get_source_registry,
)

__all__ = [
    "BaseSourceProvider",
    "BaseSourceSettings",
    "SourceRegistry",
    "create_default_registry",
    "get_source_registry",
    "setting_field",
]
