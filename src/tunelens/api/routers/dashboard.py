"""Dashboard data endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from tunelens.api.dependencies import get_dashboard_service, get_session_id
from tunelens.application.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/data")
async def get_data(
    session_id: str = Depends(get_session_id),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
) -> dict[str, Any]:
    """User profile, current track, top tracks/artists and recent plays in one call.

    Spotify payloads are passed through untouched; only currentTrack falls back to
    {"isPlaying": false} when nothing is playing.
    """
    return await dashboard_service.get_dashboard(session_id)
