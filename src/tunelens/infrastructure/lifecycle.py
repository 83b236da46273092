"""Application lifecycle management for startup and shutdown tasks.

Startup order matters:
1. logging
2. database + tables
3. token store, Spotify client, refresh scheduler (timers restored from persisted sessions)
4. sync server, auth/dashboard services
5. Genius client, extractor, lyrics service

Shutdown runs in reverse and never lets one failing step skip the rest.
"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tunelens.application.cache.lyrics_cache import LyricsCache
from tunelens.application.services.dashboard_service import DashboardService
from tunelens.application.services.lyrics_service import LyricsService
from tunelens.application.services.playback_sync import SyncServer
from tunelens.application.services.spotify_auth_service import SpotifyAuthService
from tunelens.application.services.token_refresh_scheduler import TokenRefreshScheduler
from tunelens.application.services.token_store import DatabaseTokenStore
from tunelens.config import Settings, get_settings
from tunelens.domain.exceptions import ConfigurationError
from tunelens.infrastructure.integrations.genius_client import GeniusClient
from tunelens.infrastructure.integrations.spotify_client import SpotifyClient
from tunelens.infrastructure.observability import configure_logging
from tunelens.infrastructure.persistence import Database
from tunelens.infrastructure.scraping.lyrics_extractor import GeniusLyricsExtractor

logger = logging.getLogger(__name__)


# Hey future me, validate the SQLite location BEFORE creating the engine - a missing
# directory otherwise surfaces as a cryptic "unable to open database file" on first query.
def _validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite parent directory exists."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds every long-lived object once and parks it on app.state for the routers.
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)
    app.state.started_at = time.monotonic()

    try:
        _validate_sqlite_path(settings)
        db = Database(settings)
        await db.create_tables()
        app.state.db = db
        logger.info("Database initialized: %s", settings.database.url)

        token_store = DatabaseTokenStore(session_scope=db.session_scope)
        spotify_client = SpotifyClient(settings.spotify)
        scheduler = TokenRefreshScheduler(
            client=spotify_client,
            token_store=token_store,
            refresh_skew_seconds=settings.token.refresh_skew_seconds,
            renewal_lead_seconds=settings.token.renewal_lead_seconds,
            default_expires_in=settings.token.default_expires_in,
        )
        app.state.token_store = token_store
        app.state.spotify_client = spotify_client
        app.state.scheduler = scheduler

        # Silent renewal has to survive restarts
        await scheduler.restore_from_store()

        app.state.sync_server = SyncServer(
            client=spotify_client,
            scheduler=scheduler,
            token_store=token_store,
            poll_interval=settings.playback.poll_interval_seconds,
            emit_interval=settings.playback.emit_interval_seconds,
        )
        app.state.auth_service = SpotifyAuthService(spotify_client, token_store, scheduler)
        app.state.dashboard_service = DashboardService(spotify_client, token_store, scheduler)

        genius_client = GeniusClient(settings.genius)
        app.state.genius_client = genius_client
        app.state.lyrics_service = LyricsService(
            search_client=genius_client,
            extractor=GeniusLyricsExtractor(),
            cache=LyricsCache(),
        )
        if not settings.genius.access_token:
            logger.warning("GENIUS_ACCESS_TOKEN not set - /api/lyrics will answer 503")

        logger.info(
            "Startup complete (redirect URI: %s, frontend: %s)",
            settings.spotify.redirect_uri,
            settings.spotify.frontend_redirect_uri,
        )
        yield

    except Exception as e:
        logger.exception("Error during application startup: %s", e)
        raise
    finally:
        logger.info("Shutting down application")

        sync_server = getattr(app.state, "sync_server", None)
        if sync_server is not None:
            try:
                await sync_server.shutdown()
            except Exception as e:
                logger.exception("Error stopping playback sync: %s", e)

        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            try:
                await scheduler.shutdown()
            except Exception as e:
                logger.exception("Error stopping token refresh scheduler: %s", e)

        for name in ("spotify_client", "genius_client"):
            client = getattr(app.state, name, None)
            if client is None:
                continue
            try:
                await client.close()
            except Exception as e:
                logger.exception("Error closing %s: %s", name, e)

        db = getattr(app.state, "db", None)
        if db is not None:
            try:
                await db.close()
                logger.info("Database connection closed")
            except Exception as e:
                logger.exception("Error closing database: %s", e)
