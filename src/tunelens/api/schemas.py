"""Pydantic response models for the HTTP API."""

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    """Server status (GET /)."""

    status: str = Field(description="Always 'running' while the process serves requests")
    uptime: str = Field(description="Human readable uptime, e.g. '1h 2m 3s'")
    endpoints: dict[str, str] = Field(description="HTTP endpoints by name")
    websocket: str = Field(description="Path of the playback sync WebSocket")
    active_listeners: int = Field(default=0, description="Open playback sync listeners")
    lyrics_cache: dict[str, int] | None = Field(
        default=None, description="Lyrics cache entries, hits and misses since startup"
    )


class LyricsResponse(BaseModel):
    """Resolved lyrics (GET /api/lyrics)."""

    title: str
    artist: str
    image: str | None = None
    lyrics: str
