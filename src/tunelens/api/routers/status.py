"""Server status endpoint."""

import time

from fastapi import APIRouter, Request

from tunelens.api.schemas import StatusResponse

router = APIRouter(tags=["status"])

ENDPOINTS = {
    "login": "/login",
    "callback": "/callback",
    "data": "/api/data",
    "lyrics": "/api/lyrics",
}


def format_uptime(seconds: float) -> str:
    """Render a duration as "Hh Mm Ss".

    Example:
        >>> format_uptime(3725)
        '1h 2m 5s'
    """
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"


@router.get("/", response_model=StatusResponse)
async def server_status(request: Request) -> StatusResponse:
    """Liveness plus a map of what this server offers."""
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    sync_server = getattr(request.app.state, "sync_server", None)
    lyrics_service = getattr(request.app.state, "lyrics_service", None)
    return StatusResponse(
        status="running",
        uptime=format_uptime(time.monotonic() - started_at),
        endpoints=ENDPOINTS,
        websocket="/ws/playback",
        active_listeners=sync_server.listener_count if sync_server is not None else 0,
        lyrics_cache=lyrics_service.cache.get_stats() if lyrics_service is not None else None,
    )
