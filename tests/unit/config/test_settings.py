"""Tests for application settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tunelens.config import PlaybackSettings, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run from an empty directory so a developer's .env never leaks in."""
    monkeypatch.chdir(tmp_path)
    for name in ("SPOTIFY_CLIENT_ID", "GENIUS_ACCESS_TOKEN", "DATABASE_URL", "API_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Test defaults, env loading and helpers."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.api.port == 3000
        assert settings.playback.poll_interval_seconds == 5.0
        assert settings.playback.emit_interval_seconds == 1.0
        assert settings.token.refresh_skew_seconds == 60
        assert "user-read-currently-playing" in settings.spotify.scopes

    def test_nested_sections_read_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "from-env")
        monkeypatch.setenv("GENIUS_ACCESS_TOKEN", "genius-env")
        settings = Settings()
        assert settings.spotify.client_id == "from-env"
        assert settings.genius.access_token == "genius-env"

    def test_log_level_uppercased(self) -> None:
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_non_positive_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PlaybackSettings(poll_interval_seconds=0)

    def test_cors_defaults_to_frontend(self) -> None:
        settings = Settings(spotify={"frontend_redirect_uri": "http://app.local"})
        assert settings.get_cors_origins() == ["http://app.local"]

    def test_cors_explicit(self) -> None:
        settings = Settings(api={"cors_origins": ["http://a", "http://b"]})
        assert settings.get_cors_origins() == ["http://a", "http://b"]


class TestSqlitePath:
    """Test _get_sqlite_db_path()."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("sqlite+aiosqlite:///./data/tokens.db", Path("./data/tokens.db")),
            ("sqlite+aiosqlite:///:memory:", None),
            ("postgresql+asyncpg://u:p@db/tokens", None),
        ],
    )
    def test_paths(self, url: str, expected: Path | None) -> None:
        settings = Settings(database={"url": url})
        assert settings._get_sqlite_db_path() == expected
