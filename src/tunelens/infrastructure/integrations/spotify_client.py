"""Spotify HTTP client (OAuth authorization code flow + Web API reads)."""

import base64
import logging
from typing import Any, cast
from urllib.parse import urlencode

import httpx

from tunelens.config.settings import SpotifySettings
from tunelens.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    RateLimitExceededError,
    SessionExpiredError,
    TokenRefreshException,
)
from tunelens.infrastructure.rate_limiter import get_spotify_limiter

logger = logging.getLogger(__name__)


class SpotifyClient:
    """HTTP client for Spotify OAuth and the read-only Web API endpoints we use."""

    AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL, not a password
    API_BASE_URL = "https://api.spotify.com/v1"

    # Hey future me, this init is deceptively simple - we DON'T create the HTTP client here
    # because we need to be async-friendly. The actual client gets lazy-loaded in _get_client().
    def __init__(self, settings: SpotifySettings) -> None:
        """
        Initialize Spotify client.

        Args:
            settings: Spotify configuration settings
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _basic_auth_header(self) -> str:
        credentials = f"{self.settings.client_id}:{self.settings.client_secret}"
        return "Basic " + base64.b64encode(credentials.encode("utf-8")).decode("ascii")

    # Hey future me - CENTRALIZED API REQUEST with Rate Limiting AND classification!
    # Everything above this layer only ever sees domain exceptions:
    # - 401 -> SessionExpiredError (token rejected, the caller decides about refresh/delete)
    # - 429 after retries -> RateLimitExceededError (never fatal)
    # - 204 -> None (no content, e.g. nothing playing)
    # - anything else non-2xx or a transport error -> ExternalServiceError
    async def _api_request(
        self,
        method: str,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        max_retries: int = 3,
    ) -> dict[str, Any] | None:
        """Make a rate-limited Web API request with retry on 429.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Path below API_BASE_URL, e.g. "/me"
            access_token: OAuth access token
            params: Query parameters
            max_retries: Max retries on 429 (0 disables retrying)

        Returns:
            Decoded JSON body, or None for 204 / empty bodies

        Raises:
            SessionExpiredError: Spotify answered 401
            RateLimitExceededError: Still 429 after max_retries
            ExternalServiceError: Transport failure or any other non-2xx status
        """
        client = await self._get_client()
        rate_limiter = get_spotify_limiter()
        url = f"{self.API_BASE_URL}{path}"
        headers = {"Authorization": f"Bearer {access_token}"}

        attempt = 0
        while True:
            try:
                async with rate_limiter:
                    response = await client.request(
                        method=method,
                        url=url,
                        params=params,
                        headers=headers,
                    )
            except httpx.HTTPError as e:
                raise ExternalServiceError(f"Spotify request failed: {path}: {e}") from e

            if response.status_code == 429:
                retry_after_str = response.headers.get("Retry-After")
                retry_after = (
                    int(retry_after_str) if retry_after_str and retry_after_str.isdigit() else None
                )

                if attempt >= max_retries:
                    raise RateLimitExceededError(
                        f"Spotify API rate limited (429) on {path}. "
                        f"Retry-After: {retry_after or 'not provided'} seconds.",
                        retry_after=retry_after,
                    )

                wait_time = await rate_limiter.handle_rate_limit_response(retry_after)
                attempt += 1
                logger.warning(
                    "Spotify 429 Rate Limit (attempt %d/%d): waited %.1fs, retrying %s",
                    attempt,
                    max_retries,
                    wait_time,
                    path,
                )
                continue

            if response.status_code == 401:
                raise SessionExpiredError("Session expired")

            # Error status first: a bodyless 503 is an outage, not "nothing playing"
            if response.is_error:
                raise ExternalServiceError(
                    f"Spotify API error {response.status_code} on {path}",
                    status_code=response.status_code,
                )

            if response.status_code == 204 or not response.content:
                return None

            try:
                return cast(dict[str, Any], response.json())
            except ValueError as e:
                raise ExternalServiceError(
                    f"Spotify returned malformed JSON on {path}",
                    status_code=response.status_code,
                ) from e

    def get_authorization_url(self, state: str) -> str:
        """
        Generate Spotify OAuth authorization URL.

        Args:
            state: Opaque random state echoed back on the callback

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If client_id or redirect_uri is not configured
        """
        if not self.settings.client_id or not self.settings.client_id.strip():
            raise ConfigurationError(
                "SPOTIFY_CLIENT_ID is not configured. "
                "Get credentials at https://developer.spotify.com/dashboard"
            )
        if not self.settings.redirect_uri or not self.settings.redirect_uri.strip():
            raise ConfigurationError(
                "SPOTIFY_REDIRECT_URI is not configured. "
                "Set it in .env to match your callback URL "
                "(e.g., http://localhost:3000/callback)"
            )

        params = {
            "response_type": "code",
            "client_id": self.settings.client_id,
            "scope": " ".join(self.settings.scopes),
            "redirect_uri": self.settings.redirect_uri,
            "state": state,
            "show_dialog": "false",
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def _token_request(self, data: dict[str, str]) -> httpx.Response:
        client = await self._get_client()
        try:
            return await client.post(
                self.TOKEN_URL,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": self._basic_auth_header(),
                },
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Spotify token endpoint unreachable: {e}") from e

    # Yo future me, this is THE critical step after user auth. The code is single-use and
    # expires in 10 minutes, and redirect_uri MUST match what we sent in the authorize URL.
    async def exchange_code(self, code: str) -> dict[str, Any]:
        """
        Exchange authorization code for tokens.

        Returns:
            Token response with access_token, refresh_token, expires_in

        Raises:
            ExternalServiceError: If the token endpoint rejects the code or is unreachable
        """
        response = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
            }
        )
        if response.is_error:
            raise ExternalServiceError(
                f"Authorization code exchange failed ({response.status_code})",
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())

    # Hey future me, access tokens expire after 1 hour. Spotify returns 400 with
    # error="invalid_grant" when the refresh token is revoked - check that BEFORE the generic
    # error path, it specifically means re-auth is required.
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh access token using refresh token.

        Returns:
            Token response with access_token, expires_in and (only if Spotify rotated it)
            refresh_token

        Raises:
            TokenRefreshException: If refresh token is invalid/revoked (requires re-auth)
            ExternalServiceError: For other HTTP errors (network, server issues)
        """
        response = await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

        if response.status_code == 400:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            error_code = error_data.get("error", "") if isinstance(error_data, dict) else ""
            if error_code == "invalid_grant":
                description = error_data.get(
                    "error_description", "Refresh token is invalid or has been revoked"
                )
                raise TokenRefreshException(
                    message=f"Refresh token invalid: {description}",
                    error_code=error_code,
                    http_status=400,
                )

        if response.status_code in (401, 403):
            raise TokenRefreshException(
                message="Spotify access denied. Please re-authenticate with Spotify.",
                error_code="access_denied",
                http_status=response.status_code,
            )

        if response.is_error:
            raise ExternalServiceError(
                f"Token refresh failed ({response.status_code})",
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())

    async def get_current_user(self, access_token: str) -> dict[str, Any] | None:
        """Get the current user's profile (/me)."""
        return await self._api_request("GET", "/me", access_token)

    # Listen up, the poll loop calls this every few seconds per listener. No retries here:
    # a 429 should surface immediately so the loop keeps serving its cached snapshot
    # instead of sleeping inside the request.
    async def get_currently_playing(self, access_token: str) -> dict[str, Any] | None:
        """Get the currently playing item, or None when nothing is playing (204)."""
        return await self._api_request(
            "GET", "/me/player/currently-playing", access_token, max_retries=0
        )

    async def get_top_tracks(
        self, access_token: str, time_range: str = "short_term", limit: int = 10
    ) -> dict[str, Any] | None:
        """Get the user's top tracks."""
        return await self._api_request(
            "GET",
            "/me/top/tracks",
            access_token,
            params={"time_range": time_range, "limit": limit},
        )

    async def get_top_artists(
        self, access_token: str, time_range: str = "short_term", limit: int = 10
    ) -> dict[str, Any] | None:
        """Get the user's top artists."""
        return await self._api_request(
            "GET",
            "/me/top/artists",
            access_token,
            params={"time_range": time_range, "limit": limit},
        )

    async def get_recently_played(
        self, access_token: str, limit: int = 10
    ) -> dict[str, Any] | None:
        """Get the user's recently played tracks."""
        return await self._api_request(
            "GET",
            "/me/player/recently-played",
            access_token,
            params={"limit": limit},
        )

    async def __aenter__(self) -> "SpotifyClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
