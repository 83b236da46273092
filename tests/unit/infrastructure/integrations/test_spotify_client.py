"""Tests for SpotifyClient.

Upstream HTTP is served by httpx.MockTransport handlers, the client never touches
the network. Each test gets a fresh, fast rate limiter instead of the process singleton.
"""

from collections.abc import Callable
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from tunelens.config import Settings
from tunelens.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    RateLimitExceededError,
    SessionExpiredError,
    TokenRefreshException,
)
from tunelens.infrastructure.integrations.spotify_client import SpotifyClient
from tunelens.infrastructure.rate_limiter import RateLimiter, RateLimiterConfig

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def fast_limiter(monkeypatch: pytest.MonkeyPatch) -> RateLimiter:
    limiter = RateLimiter(RateLimiterConfig(max_tokens=100, refill_rate=1000.0))
    monkeypatch.setattr(
        "tunelens.infrastructure.integrations.spotify_client.get_spotify_limiter",
        lambda: limiter,
    )
    return limiter


@pytest.fixture
def make_client(settings: Settings) -> Callable[[Handler], SpotifyClient]:
    def _make(handler: Handler) -> SpotifyClient:
        client = SpotifyClient(settings.spotify)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client

    return _make


class TestAuthorizationUrl:
    """Test OAuth URL generation."""

    def test_contains_required_params(self, settings: Settings) -> None:
        url = SpotifyClient(settings.spotify).get_authorization_url("state-123")
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert url.startswith(SpotifyClient.AUTHORIZE_URL)
        assert params["response_type"] == ["code"]
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == ["http://localhost:3000/callback"]
        assert params["state"] == ["state-123"]
        assert params["show_dialog"] == ["false"]
        assert "user-top-read" in params["scope"][0].split(" ")

    def test_missing_client_id(self, settings: Settings) -> None:
        spotify = settings.spotify.model_copy(update={"client_id": ""})
        with pytest.raises(ConfigurationError):
            SpotifyClient(spotify).get_authorization_url("s")


class TestTokenEndpoint:
    """Test code exchange and refresh."""

    @pytest.mark.asyncio
    async def test_exchange_code_posts_form_with_basic_auth(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        seen: dict[str, httpx.Request] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(
                200, json={"access_token": "a", "refresh_token": "r", "expires_in": 3600}
            )

        client = make_client(handler)
        data = await client.exchange_code("the-code")

        request = seen["request"]
        form = parse_qs(request.content.decode())
        assert str(request.url) == SpotifyClient.TOKEN_URL
        assert request.headers["Authorization"].startswith("Basic ")
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["the-code"]
        assert data["refresh_token"] == "r"
        await client.close()

    @pytest.mark.asyncio
    async def test_exchange_code_failure(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(ExternalServiceError):
            await client.exchange_code("bad")

    @pytest.mark.asyncio
    async def test_refresh_invalid_grant(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(
            lambda r: httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "Refresh token revoked"}
            )
        )
        with pytest.raises(TokenRefreshException) as exc_info:
            await client.refresh_token("dead")
        assert exc_info.value.error_code == "invalid_grant"
        assert exc_info.value.requires_reauth

    @pytest.mark.asyncio
    async def test_refresh_server_error_is_external(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(lambda r: httpx.Response(503))
        with pytest.raises(ExternalServiceError):
            await client.refresh_token("rt")

    @pytest.mark.asyncio
    async def test_refresh_success(self, make_client: Callable[[Handler], SpotifyClient]) -> None:
        client = make_client(
            lambda r: httpx.Response(200, json={"access_token": "new", "expires_in": 3600})
        )
        assert (await client.refresh_token("rt"))["access_token"] == "new"


class TestApiRequest:
    """Test Web API response classification."""

    @pytest.mark.asyncio
    async def test_success_sends_bearer_token(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer tok"
            assert request.url.path == "/v1/me/top/tracks"
            assert request.url.params["time_range"] == "short_term"
            assert request.url.params["limit"] == "10"
            return httpx.Response(200, json={"items": []})

        client = make_client(handler)
        assert await client.get_top_tracks("tok") == {"items": []}

    @pytest.mark.asyncio
    async def test_204_is_none(self, make_client: Callable[[Handler], SpotifyClient]) -> None:
        client = make_client(lambda r: httpx.Response(204))
        assert await client.get_currently_playing("tok") is None

    @pytest.mark.asyncio
    async def test_401_is_session_expired(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(lambda r: httpx.Response(401, json={"error": {"status": 401}}))
        with pytest.raises(SessionExpiredError):
            await client.get_current_user("tok")

    @pytest.mark.asyncio
    async def test_500_is_external_error(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(lambda r: httpx.Response(502, json={}))
        with pytest.raises(ExternalServiceError) as exc_info:
            await client.get_recently_played("tok")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503])
    async def test_empty_body_error_is_external_error(
        self, make_client: Callable[[Handler], SpotifyClient], status: int
    ) -> None:
        # Gateways answer outages without a body; that must not read as "nothing playing"
        client = make_client(lambda r: httpx.Response(status))
        with pytest.raises(ExternalServiceError) as exc_info:
            await client.get_currently_playing("tok")
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_empty_200_is_none(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(lambda r: httpx.Response(200))
        assert await client.get_currently_playing("tok") is None

    @pytest.mark.asyncio
    async def test_malformed_json_is_external_error(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        client = make_client(
            lambda r: httpx.Response(
                200, content=b"<html>oops</html>", headers={"Content-Type": "text/html"}
            )
        )
        with pytest.raises(ExternalServiceError) as exc_info:
            await client.get_currently_playing("tok")
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_transport_error_is_external_error(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        client = make_client(handler)
        with pytest.raises(ExternalServiceError):
            await client.get_top_artists("tok")

    @pytest.mark.asyncio
    async def test_currently_playing_429_not_retried(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, headers={"Retry-After": "7"})

        client = make_client(handler)
        with pytest.raises(RateLimitExceededError) as exc_info:
            await client.get_currently_playing("tok")
        assert exc_info.value.retry_after == 7
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_429_retried_then_succeeds(
        self, make_client: Callable[[Handler], SpotifyClient]
    ) -> None:
        responses = [
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, json={"id": "user"}),
        ]
        client = make_client(lambda r: responses.pop(0))
        assert await client.get_current_user("tok") == {"id": "user"}
