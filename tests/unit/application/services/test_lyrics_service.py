"""Unit tests for the lyrics resolution pipeline.

Hey future me - search client and extractor are test doubles, so "zero outbound calls"
on a cache hit is simply "the mocks were not awaited again".
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tunelens.application.services.lyrics_service import LyricsService
from tunelens.domain.entities import LyricsCandidate
from tunelens.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    LyricsExtractionError,
    LyricsNotFoundError,
    ValidationError,
)

TRANSLATION = LyricsCandidate(
    title="Say It (Spanish Version)",
    artist="X",
    image=None,
    url="https://genius.com/x-say-it-spanish",
)
REAL = LyricsCandidate(
    title="Say It",
    artist="Kiana Ledé",
    image="https://images.genius.com/say-it.jpg",
    url="https://genius.com/Kiana-lede-say-it-lyrics",
)


class TestLyricsService:
    """Test LyricsService.resolve()."""

    @pytest.fixture
    def search_client(self) -> AsyncMock:
        client = AsyncMock()
        client.search.return_value = [TRANSLATION, REAL]
        client.fetch_page.return_value = "<html>page</html>"
        return client

    @pytest.fixture
    def extractor(self) -> MagicMock:
        extractor = MagicMock()
        extractor.extract.return_value = "Say it\nSay it now"
        return extractor

    @pytest.fixture
    def service(self, search_client: AsyncMock, extractor: MagicMock) -> LyricsService:
        return LyricsService(search_client=search_client, extractor=extractor)

    @pytest.mark.asyncio
    async def test_resolve_picks_best_candidate(
        self, service: LyricsService, search_client: AsyncMock, extractor: MagicMock
    ) -> None:
        result = await service.resolve("Say It (Kiana Ledé & Friend)", "Kiana Lede")

        assert result.title == "Say It"
        assert result.artist == "Kiana Ledé"
        assert result.image == "https://images.genius.com/say-it.jpg"
        assert result.lyrics == "Say it\nSay it now"
        search_client.fetch_page.assert_awaited_once_with(REAL.url)
        extractor.extract.assert_called_once_with("<html>page</html>")

    @pytest.mark.asyncio
    async def test_fan_out_queries(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        await service.resolve("Say It", "Kiana Lede")

        queries = [call.args[0] for call in search_client.search.await_args_list]
        assert queries == ["Kiana Lede", "Kiana Lede Say It", "Say It Kiana Lede", "Say It"]

    @pytest.mark.asyncio
    async def test_song_only_search_without_artist(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        await service.resolve("Say It")
        search_client.search.assert_awaited_once_with("Say It")

    @pytest.mark.asyncio
    async def test_cache_idempotence(
        self, service: LyricsService, search_client: AsyncMock, extractor: MagicMock
    ) -> None:
        first = await service.resolve("Say It", "Kiana Lede")
        searches = search_client.search.await_count

        second = await service.resolve("Say It", "Kiana Lede")

        assert second.to_dict() == first.to_dict()
        assert search_client.search.await_count == searches
        assert search_client.fetch_page.await_count == 1
        assert extractor.extract.call_count == 1

    @pytest.mark.asyncio
    async def test_cache_key_ignores_case_and_padding(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        await service.resolve("Say It", "Kiana Lede")
        await service.resolve("  say it ", "KIANA LEDE")
        assert search_client.fetch_page.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("songname", [None, "", "   "])
    async def test_song_name_required(self, service: LyricsService, songname: str | None) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await service.resolve(songname, "Kiana Lede")
        assert exc_info.value.message == "Song name is required"

    @pytest.mark.asyncio
    async def test_no_songs_found(self, service: LyricsService, search_client: AsyncMock) -> None:
        search_client.search.return_value = []
        with pytest.raises(LyricsNotFoundError) as exc_info:
            await service.resolve("Unknown Song", "Nobody")
        assert exc_info.value.reason == LyricsNotFoundError.NO_SONGS_FOUND

    @pytest.mark.asyncio
    async def test_duplicate_urls_merged(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        # Every one of the four searches returns the same two pages
        await service.resolve("Say It", "Kiana Lede")
        search_client.fetch_page.assert_awaited_once_with(REAL.url)

    @pytest.mark.asyncio
    async def test_partial_search_failure_tolerated(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        search_client.search.side_effect = [
            ExternalServiceError("down"),
            [REAL],
            ExternalServiceError("down"),
            [],
        ]
        result = await service.resolve("Say It", "Kiana Lede")
        assert result.title == "Say It"

    @pytest.mark.asyncio
    async def test_all_searches_failing_is_extraction_error(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        search_client.search.side_effect = ExternalServiceError("network down")
        with pytest.raises(LyricsExtractionError) as exc_info:
            await service.resolve("Say It", "Kiana Lede")
        assert isinstance(exc_info.value.__cause__, ExternalServiceError)

    @pytest.mark.asyncio
    async def test_missing_configuration_propagates(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        search_client.search.side_effect = ConfigurationError("GENIUS_ACCESS_TOKEN is not configured")
        with pytest.raises(ConfigurationError):
            await service.resolve("Say It")

    @pytest.mark.asyncio
    async def test_page_fetch_failure(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        search_client.fetch_page.side_effect = ExternalServiceError("404", status_code=404)
        with pytest.raises(LyricsExtractionError) as exc_info:
            await service.resolve("Say It", "Kiana Lede")
        assert exc_info.value.message == "Failed to fetch lyrics"

    @pytest.mark.asyncio
    async def test_parser_failure(self, service: LyricsService, extractor: MagicMock) -> None:
        extractor.extract.side_effect = ValueError("bad markup")
        with pytest.raises(LyricsExtractionError):
            await service.resolve("Say It", "Kiana Lede")

    @pytest.mark.asyncio
    async def test_failures_not_cached(
        self, service: LyricsService, search_client: AsyncMock
    ) -> None:
        search_client.fetch_page.side_effect = [ExternalServiceError("flaky"), "<html/>"]
        with pytest.raises(LyricsExtractionError):
            await service.resolve("Say It", "Kiana Lede")

        await service.resolve("Say It", "Kiana Lede")
        assert len(service.cache) == 1
