"""TuneLens - live Spotify playback dashboard backend with lyrics resolution."""

__version__ = "0.1.0"
