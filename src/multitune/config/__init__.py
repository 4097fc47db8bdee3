"""Configuration module for Multitune."""

from .settings import (
    AuthSettings,
    DatabaseSettings,
    GoogleSettings,
    ObservabilitySettings,
    Settings,
    SpotifySettings,
    get_settings,
)

__all__ = [
    "AuthSettings",
    "DatabaseSettings",
    "GoogleSettings",
    "ObservabilitySettings",
    "Settings",
    "SpotifySettings",
    "get_settings",
]
