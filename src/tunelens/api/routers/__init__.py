"""API routers."""

from tunelens.api.routers import auth, dashboard, lyrics, playback, status

__all__ = ["auth", "dashboard", "lyrics", "playback", "status"]
