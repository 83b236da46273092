"""Genius HTTP client: song search API + raw lyrics page fetch."""

import logging
from typing import Any

import httpx

from tunelens.config.settings import GeniusSettings
from tunelens.domain.entities import LyricsCandidate
from tunelens.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    RateLimitExceededError,
)
from tunelens.domain.ports import ILyricsSearchClient
from tunelens.infrastructure.rate_limiter import get_genius_limiter

logger = logging.getLogger(__name__)

# Lyrics pages are served to browsers, a bare httpx UA gets the bot wall more often
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class GeniusClient(ILyricsSearchClient):
    """HTTP client for the Genius search API and lyrics pages."""

    def __init__(self, settings: GeniusSettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout, follow_redirects=True
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            async with get_genius_limiter():
                response = await client.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Genius request failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitExceededError(
                "Genius rate limited (429)",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.is_error:
            raise ExternalServiceError(
                f"Genius returned {response.status_code} for {url}",
                status_code=response.status_code,
            )
        return response

    async def search(self, query: str) -> list[LyricsCandidate]:
        """Search songs on Genius.

        Args:
            query: Free text search string

        Returns:
            Candidates in the order Genius ranked them (may be empty)

        Raises:
            ConfigurationError: GENIUS_ACCESS_TOKEN is not set
            ExternalServiceError: Transport error or non-2xx status
        """
        if not self.settings.access_token:
            raise ConfigurationError("GENIUS_ACCESS_TOKEN is not configured")

        response = await self._get(
            f"{self.settings.api_base_url.rstrip('/')}/search",
            params={"q": query},
            headers={"Authorization": f"Bearer {self.settings.access_token}"},
        )
        hits = (response.json().get("response") or {}).get("hits") or []

        candidates = []
        for hit in hits:
            result = hit.get("result") or {}
            url = result.get("url")
            if not url:
                continue
            candidates.append(
                LyricsCandidate(
                    title=result.get("title") or "",
                    artist=(result.get("primary_artist") or {}).get("name") or "",
                    image=result.get("song_art_image_url"),
                    url=url,
                )
            )

        logger.debug("Genius search %r returned %d hits", query, len(candidates))
        return candidates

    async def fetch_page(self, url: str) -> str:
        """Fetch a lyrics page and return raw HTML."""
        response = await self._get(url, headers=BROWSER_HEADERS)
        return response.text


__all__ = ["GeniusClient"]
