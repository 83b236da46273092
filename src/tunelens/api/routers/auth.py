"""Spotify OAuth endpoints: /login and /callback.

Hey future me - both endpoints only ever REDIRECT. Failures go back to the frontend as
?error=<code> so the SPA can show them, never as a JSON error page the user would be
stranded on.
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from tunelens.api.dependencies import get_app_settings, get_auth_service
from tunelens.application.services.spotify_auth_service import SpotifyAuthService
from tunelens.config import Settings
from tunelens.domain.exceptions import DomainException

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _frontend_redirect(settings: Settings, **params: str) -> RedirectResponse:
    target = f"{settings.spotify.frontend_redirect_uri}?{urlencode(params)}"
    return RedirectResponse(url=target, status_code=302)


@router.get("/login")
async def login(
    auth_service: SpotifyAuthService = Depends(get_auth_service),
) -> RedirectResponse:
    """Redirect the browser to Spotify's consent screen."""
    result = auth_service.generate_auth_url()
    return RedirectResponse(url=result.authorization_url, status_code=302)


@router.get("/callback")
async def callback(
    code: str | None = None,
    error: str | None = None,
    auth_service: SpotifyAuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """Finish the OAuth dance and hand the new session id to the frontend."""
    if error:
        logger.info("OAuth callback returned error: %s", error)
        return _frontend_redirect(settings, error=error)

    if not code:
        return _frontend_redirect(settings, error="no_code")

    try:
        session = await auth_service.complete_login(code)
    except DomainException as e:
        logger.error("Token exchange error: %s", e.message)
        return _frontend_redirect(settings, error="token_exchange_failed")

    return _frontend_redirect(settings, session=session.session_id)
