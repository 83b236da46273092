"""Application settings loaded from environment variables and .env.

Hey future me - every section is its own BaseSettings with an env prefix, so
SPOTIFY_CLIENT_ID lands in settings.spotify.client_id without any manual
os.getenv() plumbing. Tests can build Settings(database={"url": ...}) directly,
pydantic coerces the dict into the nested model.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"


class SpotifySettings(BaseSettings):
    """Spotify OAuth application credentials and redirect targets."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=_ENV_FILE, extra="ignore"
    )

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:3000/callback"
    # Where the browser lands after /callback (with ?session= or ?error=)
    frontend_redirect_uri: str = "http://localhost:5173"
    scopes: list[str] = Field(
        default_factory=lambda: [
            "user-read-private",
            "user-read-email",
            "user-read-currently-playing",
            "user-read-playback-state",
            "user-read-recently-played",
            "user-top-read",
            "playlist-read-private",
            "playlist-read-collaborative",
        ]
    )


class GeniusSettings(BaseSettings):
    """Genius search API access (lyrics candidates)."""

    model_config = SettingsConfigDict(
        env_prefix="GENIUS_", env_file=_ENV_FILE, extra="ignore"
    )

    access_token: str = ""
    api_base_url: str = "https://api.genius.com"
    request_timeout: float = 15.0


class DatabaseSettings(BaseSettings):
    """Durable session table location."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=_ENV_FILE, extra="ignore"
    )

    url: str = "sqlite+aiosqlite:///./spotify_tokens.db"
    echo: bool = False


class PlaybackSettings(BaseSettings):
    """Cadences of the playback sync engine.

    Hey future me - poll is the SLOW upstream call, emit is the FAST local
    interpolation tick. Dropping poll_interval below ~2s gets you rate limited
    as soon as a handful of dashboards are open.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLAYBACK_", env_file=_ENV_FILE, extra="ignore"
    )

    poll_interval_seconds: float = 5.0
    emit_interval_seconds: float = 1.0

    @field_validator("poll_interval_seconds", "emit_interval_seconds")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("interval must be positive")
        return value


class TokenSettings(BaseSettings):
    """Access token freshness policy."""

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_", env_file=_ENV_FILE, extra="ignore"
    )

    # ensure_fresh() refreshes when fewer than this many seconds remain
    refresh_skew_seconds: int = 60
    # silent renewal fires this many seconds before expiry
    renewal_lead_seconds: int = 300
    # used when the token endpoint omits expires_in
    default_expires_in: int = 3600


class ApiSettings(BaseSettings):
    """HTTP server binding and CORS."""

    model_config = SettingsConfigDict(
        env_prefix="API_", env_file=_ENV_FILE, extra="ignore"
    )

    host: str = "0.0.0.0"  # nosec B104 - container deployment
    port: int = 3000
    cors_origins: list[str] = Field(default_factory=list)


class ObservabilitySettings(BaseSettings):
    """Logging output format."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_", env_file=_ENV_FILE, extra="ignore"
    )

    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object, one per process (see get_settings())."""

    model_config = SettingsConfigDict(env_file=_ENV_FILE, extra="ignore")

    app_name: str = "tunelens"
    app_env: str = "development"
    log_level: str = "INFO"

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    genius: GeniusSettings = Field(default_factory=GeniusSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    token: TokenSettings = Field(default_factory=TokenSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    observability: ObservabilitySettings = Field(
        default_factory=ObservabilitySettings
    )

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    def get_cors_origins(self) -> list[str]:
        """CORS origins, defaulting to the frontend the OAuth flow redirects to."""
        if self.api.cors_origins:
            return self.api.cors_origins
        return [self.spotify.frontend_redirect_uri]

    # Hey future me - only meaningful for sqlite URLs. Returns None for anything else
    # (including in-memory sqlite) so callers can skip directory creation.
    def _get_sqlite_db_path(self) -> Path | None:
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
