"""Spotify OAuth Authentication Service.

Hey future me - this service owns the login half of the session lifecycle:

1. generate_auth_url() -> URL + random opaque state
2. User visits URL, grants access, Spotify redirects to /callback?code=...
3. complete_login(code) -> exchange code, create + persist Session, arm silent renewal

The router stays thin (just redirects), everything testable lives here.
"""

import logging
import secrets
from dataclasses import dataclass

from tunelens.application.services.token_refresh_scheduler import TokenRefreshScheduler
from tunelens.domain.entities import Session
from tunelens.domain.exceptions import ExternalServiceError
from tunelens.domain.ports import ITokenStore
from tunelens.infrastructure.integrations.spotify_client import SpotifyClient
from tunelens.infrastructure.observability import short_id

logger = logging.getLogger(__name__)


@dataclass
class AuthUrlResult:
    """Result of auth URL generation."""

    authorization_url: str
    state: str


class SpotifyAuthService:
    """Service for Spotify OAuth authentication."""

    def __init__(
        self,
        client: SpotifyClient,
        token_store: ITokenStore,
        scheduler: TokenRefreshScheduler,
    ) -> None:
        self._client = client
        self._token_store = token_store
        self._scheduler = scheduler

    def generate_auth_url(self, state: str | None = None) -> AuthUrlResult:
        """Generate OAuth authorization URL.

        Args:
            state: Optional opaque state (random if None)

        Raises:
            ConfigurationError: Spotify client id / redirect URI missing
        """
        if state is None:
            state = secrets.token_urlsafe(16)

        authorization_url = self._client.get_authorization_url(state)
        logger.debug("Generated auth URL with state=%s...", state[:8])
        return AuthUrlResult(authorization_url=authorization_url, state=state)

    # Hey future me - the session id is the ONLY credential the frontend ever holds. It's
    # 32 random bytes urlsafe-encoded, never derived from anything Spotify gives us.
    async def complete_login(self, code: str) -> Session:
        """Exchange an authorization code and create a new session.

        Returns:
            The persisted Session (renewal timer already armed)

        Raises:
            ExternalServiceError: Code exchange failed or returned no tokens
        """
        token_data = await self._client.exchange_code(code)

        access_token = token_data.get("access_token")
        refresh_token = token_data.get("refresh_token")
        if not access_token or not refresh_token:
            raise ExternalServiceError("Token response is missing access or refresh token")

        session = Session(
            session_id=secrets.token_urlsafe(32),
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=self._scheduler.expires_at_from(token_data),
        )
        await self._token_store.put(session)
        self._scheduler.schedule(session)

        logger.info("Created session %s", short_id(session.session_id))
        return session


__all__ = ["AuthUrlResult", "SpotifyAuthService"]
