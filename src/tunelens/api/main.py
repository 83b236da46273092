"""FastAPI application factory and uvicorn entry point."""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tunelens import __version__
from tunelens.api.exception_handlers import register_exception_handlers
from tunelens.api.routers import auth, dashboard, lyrics, playback, status
from tunelens.config import Settings, get_settings
from tunelens.infrastructure.lifecycle import lifespan
from tunelens.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to get_settings(), tests pass their own)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="TuneLens",
        description="Spotify dashboard backend: live playback sync and lyrics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    # Credentials allowed, so origins must be explicit (no "*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(status.router)
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(lyrics.router)
    app.include_router(playback.router)

    return app


def run() -> None:
    """Console script entry point."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
