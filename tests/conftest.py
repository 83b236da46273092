"""Shared fixtures.

Hey future me - everything time-based (token expiry, interpolation) takes an injectable
clock returning epoch ms. FakeClock lets a test move time by hand instead of sleeping.
"""

from unittest.mock import AsyncMock

import pytest

from tunelens.config import Settings
from tunelens.domain.entities import Session

NOW = 1_700_000_000_000


class FakeClock:
    """Callable epoch-ms clock that only moves when told to."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class InMemoryTokenStore:
    """Dict-backed token store double (same contract as DatabaseTokenStore)."""

    def __init__(self, *sessions: Session) -> None:
        self.sessions = {s.session_id: s for s in sessions}
        self.deleted: list[str] = []

    async def get(self, session_id: str) -> Session | None:
        return self.sessions.get(session_id)

    async def put(self, session: Session) -> None:
        self.sessions[session.session_id] = session

    async def delete(self, session_id: str) -> bool:
        self.deleted.append(session_id)
        return self.sessions.pop(session_id, None) is not None

    async def list_all(self) -> list[Session]:
        return list(self.sessions.values())


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="development",
        database={"url": "sqlite+aiosqlite:///:memory:"},
        spotify={
            "client_id": "test-client-id",
            "client_secret": "test-client-secret",
            "redirect_uri": "http://localhost:3000/callback",
            "frontend_redirect_uri": "http://localhost:5173",
        },
        genius={"access_token": "test-genius-token"},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session() -> Session:
    """Session whose access token is valid for another hour."""
    return Session(
        session_id="session-abcdef123456",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=NOW + 3600 * 1000,
    )


@pytest.fixture
def token_store(session: Session) -> InMemoryTokenStore:
    return InMemoryTokenStore(session)


@pytest.fixture
def spotify_client() -> AsyncMock:
    """SpotifyClient double, every upstream call is an AsyncMock."""
    client = AsyncMock()
    client.refresh_token.return_value = {"access_token": "access-2", "expires_in": 3600}
    client.get_currently_playing.return_value = None
    return client
