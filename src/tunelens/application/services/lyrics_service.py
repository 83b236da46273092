"""Lyrics Service - resolves a noisy track title to lyrics text.

Hey future me - the pipeline, in order:

A. normalize   normalize_query() cleans the title ("feat." credits, " - Remastered", ...)
B. fan-out     up to 4 differently worded searches fired concurrently, hits merged and
               deduplicated by page URL (first occurrence wins, so order is stable)
C. score       select_best_candidate() - best heuristic score, first one on ties
D. extract     fetch the winner's page, ILyricsExtractor turns HTML into text

The final result is cached for the life of the process under the RAW (song, artist)
input, so a repeat request skips B-D entirely and makes zero outbound calls.
"""

import asyncio
import logging

from tunelens.application.cache.lyrics_cache import LyricsCache, make_cache_key
from tunelens.domain.entities import LyricsCandidate, LyricsResult
from tunelens.domain.exceptions import (
    ConfigurationError,
    DomainException,
    LyricsExtractionError,
    LyricsNotFoundError,
    ValidationError,
)
from tunelens.domain.ports import ILyricsExtractor, ILyricsSearchClient
from tunelens.domain.value_objects import (
    NormalizedQuery,
    build_search_queries,
    normalize_query,
    select_best_candidate,
)

logger = logging.getLogger(__name__)


class LyricsService:
    """Runs the lyrics resolution pipeline with a process-lifetime cache."""

    def __init__(
        self,
        search_client: ILyricsSearchClient,
        extractor: ILyricsExtractor,
        cache: LyricsCache | None = None,
    ) -> None:
        self._search_client = search_client
        self._extractor = extractor
        self._cache = cache if cache is not None else LyricsCache()

    @property
    def cache(self) -> LyricsCache:
        return self._cache

    async def resolve(self, songname: str | None, artist: str | None = None) -> LyricsResult:
        """Resolve lyrics for a song title and optional artist.

        Raises:
            ValidationError: songname missing/blank
            LyricsNotFoundError: no search hits (no_songs_found) or nothing to pick
                from (no_matching_song)
            LyricsExtractionError: page fetch/parse failed, or every search errored
            ConfigurationError: lyrics provider not configured
        """
        if not songname or not songname.strip():
            raise ValidationError("Song name is required")

        cache_key = make_cache_key(songname, artist)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.info("Serving lyrics from cache for: %s", cache_key)
            return cached

        query = normalize_query(songname, artist)
        logger.debug("Normalized lyrics query %r/%r -> %s", songname, artist, query)

        candidates = await self._fan_out_search(query)
        best = select_best_candidate(candidates, query)
        logger.info(
            "Chose '%s' by '%s' (score %d of %d candidates)",
            best.candidate.title,
            best.candidate.artist,
            best.score,
            len(candidates),
        )

        lyrics = await self._extract(best.candidate)
        result = LyricsResult(
            title=best.candidate.title,
            artist=best.candidate.artist,
            image=best.candidate.image,
            lyrics=lyrics,
        )

        await self._cache.set(cache_key, result)
        logger.info("Cached lyrics for: %s", cache_key)
        return result

    async def _fan_out_search(self, query: NormalizedQuery) -> list[LyricsCandidate]:
        search_queries = build_search_queries(query)
        results = await asyncio.gather(
            *(self._search_client.search(q) for q in search_queries),
            return_exceptions=True,
        )

        candidates: list[LyricsCandidate] = []
        seen_urls: set[str] = set()
        errors: list[BaseException] = []
        for search_query, result in zip(search_queries, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Lyrics search %r failed: %s", search_query, result)
                errors.append(result)
                continue
            for candidate in result:
                if candidate.url in seen_urls:
                    continue
                seen_urls.add(candidate.url)
                candidates.append(candidate)

        logger.debug(
            "Fan-out: %d queries, %d failed, %d unique candidates",
            len(search_queries),
            len(errors),
            len(candidates),
        )

        if errors and len(errors) == len(search_queries):
            config_error = next((e for e in errors if isinstance(e, ConfigurationError)), None)
            if config_error is not None:
                raise config_error
            raise LyricsExtractionError() from errors[0]

        if not candidates:
            raise LyricsNotFoundError(LyricsNotFoundError.NO_SONGS_FOUND)
        return candidates

    async def _extract(self, candidate: LyricsCandidate) -> str:
        try:
            html = await self._search_client.fetch_page(candidate.url)
            return self._extractor.extract(html)
        except DomainException as e:
            logger.error("Fetching lyrics page %s failed: %s", candidate.url, e)
            raise LyricsExtractionError() from e
        except Exception as e:
            # Parser blew up on unexpected markup
            logger.exception("Extracting lyrics from %s failed", candidate.url)
            raise LyricsExtractionError() from e


__all__ = ["LyricsService"]
