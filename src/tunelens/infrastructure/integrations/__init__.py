"""External service integrations."""

from .genius_client import GeniusClient
from .spotify_client import SpotifyClient

__all__ = ["GeniusClient", "SpotifyClient"]
