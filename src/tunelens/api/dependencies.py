"""Dependency injection for API endpoints."""

import logging
from typing import Any, cast

from fastapi import Header, HTTPException, Query, Request
from starlette.datastructures import State

from tunelens.application.services.dashboard_service import DashboardService
from tunelens.application.services.lyrics_service import LyricsService
from tunelens.application.services.playback_sync import SyncServer
from tunelens.application.services.spotify_auth_service import SpotifyAuthService
from tunelens.config import Settings
from tunelens.domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


# Hey future me, every service is built ONCE in the lifespan and parked on app.state. If an
# attribute is missing, startup went wrong (or a test forgot to set it) - answer 503 instead
# of an AttributeError 500. Works for Request and WebSocket alike since both expose .app.
def get_state_service(state: State, name: str) -> Any:
    """Fetch a lifespan-built service from app state."""
    if not hasattr(state, name):
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return getattr(state, name)


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return cast(Settings, get_state_service(request.app.state, "settings"))


def get_auth_service(request: Request) -> SpotifyAuthService:
    return cast(SpotifyAuthService, get_state_service(request.app.state, "auth_service"))


def get_dashboard_service(request: Request) -> DashboardService:
    return cast(DashboardService, get_state_service(request.app.state, "dashboard_service"))


def get_lyrics_service(request: Request) -> LyricsService:
    return cast(LyricsService, get_state_service(request.app.state, "lyrics_service"))


def get_sync_server(request: Request) -> SyncServer:
    return cast(SyncServer, get_state_service(request.app.state, "sync_server"))


# Listen up, the session id travels as "Authorization: Bearer <id>" (frontend fetch) OR as
# ?session=<id> (links, quick curl tests). Header wins when both are present.
def get_session_id(
    authorization: str | None = Header(default=None),
    session: str | None = Query(default=None),
) -> str:
    """Extract the session id from the bearer header or the query string.

    Raises:
        AuthenticationError: Neither is present ("No session")
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    if session and session.strip():
        return session.strip()
    raise AuthenticationError("No session")
