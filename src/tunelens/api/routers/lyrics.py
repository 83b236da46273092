"""Lyrics endpoint."""

from fastapi import APIRouter, Depends

from tunelens.api.dependencies import get_lyrics_service
from tunelens.api.schemas import LyricsResponse
from tunelens.application.services.lyrics_service import LyricsService

router = APIRouter(prefix="/api", tags=["lyrics"])


# songname is optional at the HTTP level on purpose: a missing name is answered with
# 400 {"error": "Song name is required"}, not FastAPI's 422 validation body
@router.get("/lyrics", response_model=LyricsResponse)
async def get_lyrics(
    songname: str | None = None,
    artist: str | None = None,
    lyrics_service: LyricsService = Depends(get_lyrics_service),
) -> LyricsResponse:
    """Resolve lyrics for a (possibly noisy) song title."""
    result = await lyrics_service.resolve(songname, artist)
    return LyricsResponse(**result.to_dict())
