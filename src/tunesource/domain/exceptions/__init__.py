"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message lives on an attribute so callers can read it without parsing
    # str(exception). Don't raise this directly, pick a subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when a targeted lookup cannot be resolved."""

    # Yo, this is for "get by ID" calls: song "dQw4w9WgXcQ" has no metadata, playlist "abc"
    # doesn't exist. Search and playlist listings return [] instead, only targeted lookups raise.
    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when a model's invariants are violated."""

    pass


class InvalidStateException(DomainException):
    """Raised when an object is in the wrong state for the requested operation.

    Example: downloading a song that has no selected stream.
    """

    pass


class UninitializedServiceError(InvalidStateException):
    """Raised when a capability service is accessed before its provider is ready.

    The message names both the provider and the capability so logs say exactly
    which backend was asked for what.
    """

    def __init__(self, source_name: str, capability: str, reason: str | None = None) -> None:
        message = f"{capability} service of source '{source_name}' is not initialized"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.source_name = source_name
        self.capability = capability
        self.reason = reason


class ConfigurationError(DomainException):
    """Raised when configuration is missing or invalid (credentials, paths)."""

    pass


class ToolMissingError(DomainException):
    """Raised when the external extractor executable cannot be launched.

    Hey future me - this one is NOT a download failure! Retrying won't help,
    the user has to install yt-dlp or fix the configured path. Keep it separate
    so the caller can show "install the tool" instead of "try again later".
    """

    def __init__(self, tool: str, path: str, original_error: Exception | None = None) -> None:
        super().__init__(
            f"{tool} executable not found at '{path}'. "
            f"Install {tool} or set TUNESOURCE_DOWNLOAD__YT_DLP_PATH."
        )
        self.tool = tool
        self.path = path
        self.original_error = original_error


class SettingsPersistenceError(DomainException):
    """Raised when a source settings document cannot be written."""

    def __init__(self, source_name: str, path: str, original_error: Exception | None = None) -> None:
        super().__init__(f"Failed to save settings for '{source_name}' to {path}")
        self.source_name = source_name
        self.path = path
        self.original_error = original_error


__all__ = [
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "InvalidStateException",
    "SettingsPersistenceError",
    "ToolMissingError",
    "UninitializedServiceError",
    "ValidationException",
]
