"""Application services - session lifecycle, playback sync and lyrics resolution."""

from tunelens.application.services.dashboard_service import DashboardService
from tunelens.application.services.lyrics_service import LyricsService
from tunelens.application.services.playback_sync import (
    ActiveListener,
    ListenerState,
    PollOutcome,
    SyncServer,
)
from tunelens.application.services.spotify_auth_service import (
    AuthUrlResult,
    SpotifyAuthService,
)
from tunelens.application.services.token_refresh_scheduler import TokenRefreshScheduler
from tunelens.application.services.token_store import DatabaseTokenStore

__all__ = [
    "ActiveListener",
    "AuthUrlResult",
    "DashboardService",
    "DatabaseTokenStore",
    "ListenerState",
    "LyricsService",
    "PollOutcome",
    "SpotifyAuthService",
    "SyncServer",
    "TokenRefreshScheduler",
]
