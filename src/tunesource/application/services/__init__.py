"""Application services spanning several sources."""

from tunesource.application.services.multi_source_service import (
    MultiSourceDownloadService,
    MultiSourceMetadataService,
    MultiSourceSearchService,
    guess_source,
)

__all__ = [
    "MultiSourceDownloadService",
    "MultiSourceMetadataService",
    "MultiSourceSearchService",
    "guess_source",
]
