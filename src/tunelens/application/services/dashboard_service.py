"""Dashboard aggregation: one request, five concurrent Spotify reads."""

import asyncio
import logging
from typing import Any

from tunelens.application.services.token_refresh_scheduler import TokenRefreshScheduler
from tunelens.domain.exceptions import (
    AuthenticationError,
    DomainException,
    SessionExpiredError,
)
from tunelens.domain.ports import ITokenStore
from tunelens.infrastructure.integrations.spotify_client import SpotifyClient
from tunelens.infrastructure.observability import short_id

logger = logging.getLogger(__name__)

NOT_PLAYING: dict[str, Any] = {"isPlaying": False}


class DashboardService:
    """Builds the /api/data payload for a session."""

    def __init__(
        self,
        client: SpotifyClient,
        token_store: ITokenStore,
        scheduler: TokenRefreshScheduler,
    ) -> None:
        self._client = client
        self._token_store = token_store
        self._scheduler = scheduler

    async def _current_track(self, access_token: str) -> dict[str, Any]:
        # Never fails the aggregate: nothing playing, 429, even 401 all become "not playing"
        try:
            data = await self._client.get_currently_playing(access_token)
        except DomainException as e:
            logger.debug("Currently-playing lookup failed, reporting not playing: %s", e)
            return dict(NOT_PLAYING)
        return data if data else dict(NOT_PLAYING)

    async def get_dashboard(self, session_id: str) -> dict[str, Any]:
        """Aggregate user, current track, top tracks/artists and recent plays.

        Raises:
            AuthenticationError: Unknown session id
            SessionExpiredError: Refresh token rejected or Spotify said 401 (session row deleted)
            ExternalServiceError: Any other upstream failure, token endpoint outages included
        """
        if await self._token_store.get(session_id) is None:
            raise AuthenticationError("Invalid session")

        try:
            session = await self._scheduler.ensure_fresh(session_id)
        except SessionExpiredError:
            await self._expire(session_id)
            raise

        token = session.access_token
        try:
            user, current_track, top_tracks, top_artists, recently_played = (
                await asyncio.gather(
                    self._client.get_current_user(token),
                    self._current_track(token),
                    self._client.get_top_tracks(token),
                    self._client.get_top_artists(token),
                    self._client.get_recently_played(token),
                )
            )
        except SessionExpiredError:
            await self._expire(session_id)
            raise

        return {
            "user": user,
            "currentTrack": current_track,
            "topTracks": top_tracks,
            "topArtists": top_artists,
            "recentlyPlayed": recently_played,
        }

    async def _expire(self, session_id: str) -> None:
        self._scheduler.cancel(session_id)
        await self._token_store.delete(session_id)
        logger.info("Session %s expired, re-auth required", short_id(session_id))


__all__ = ["DashboardService"]
