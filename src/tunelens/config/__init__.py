"""Configuration module for TuneLens."""

from .settings import (
    ApiSettings,
    DatabaseSettings,
    GeniusSettings,
    ObservabilitySettings,
    PlaybackSettings,
    Settings,
    SpotifySettings,
    TokenSettings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "DatabaseSettings",
    "GeniusSettings",
    "ObservabilitySettings",
    "PlaybackSettings",
    "Settings",
    "SpotifySettings",
    "TokenSettings",
    "get_settings",
]
