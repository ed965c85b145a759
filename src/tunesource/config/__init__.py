"""Configuration module for TuneSource."""

from .settings import (
    DownloadSettings,
    HttpSettings,
    ObservabilitySettings,
    Settings,
    default_app_data_dir,
    get_settings,
)

__all__ = [
    "DownloadSettings",
    "HttpSettings",
    "ObservabilitySettings",
    "Settings",
    "default_app_data_dir",
    "get_settings",
]
