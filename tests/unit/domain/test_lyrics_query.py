"""Tests for lyrics query normalization.

Hey future me - every cleaning rule is a pure function, so each one is tested on its own
first and then through normalize_query() where the ORDER of the rules matters.
"""

import pytest

from tunelens.domain.value_objects.lyrics_query import (
    NormalizedQuery,
    build_search_queries,
    extract_featured_artist,
    fold_text,
    normalize_query,
    split_artists,
    split_by_artist,
    strip_artist_parentheticals,
    truncate_at_separator,
    words,
)


class TestTextHelpers:
    """Test folding and tokenizing."""

    def test_fold_text_strips_accents_and_case(self) -> None:
        assert fold_text("Kiana Ledé") == "kiana lede"
        assert fold_text("  BEYONCÉ ") == "beyonce"

    def test_words_folds_and_tokenizes(self) -> None:
        assert words("Say It (Kiana Ledé & Friend)") == ["say", "it", "kiana", "lede", "friend"]

    def test_words_empty(self) -> None:
        assert words(None) == []
        assert words("") == []


class TestSplitArtists:
    """Test artist credit splitting."""

    @pytest.mark.parametrize(
        ("credit", "expected"),
        [
            ("Rihanna, Bryson Tiller & DJ Khaled", ["Rihanna", "Bryson Tiller", "DJ Khaled"]),
            ("Drake feat. Future", ["Drake", "Future"]),
            ("Future ft. Drake", ["Future", "Drake"]),
            ("Calvin Harris with Dua Lipa", ["Calvin Harris", "Dua Lipa"]),
            ("Kiana Ledé", ["Kiana Ledé"]),
        ],
    )
    def test_split_artists(self, credit: str, expected: list[str]) -> None:
        assert split_artists(credit) == expected

    def test_split_artists_empty(self) -> None:
        assert split_artists(None) == []
        assert split_artists("") == []


class TestCleaningRules:
    """Test each normalization rule in isolation."""

    def test_split_by_artist(self) -> None:
        assert split_by_artist("Blinding Lights by The Weeknd") == (
            "Blinding Lights",
            "The Weeknd",
        )

    def test_split_by_artist_without_marker(self) -> None:
        assert split_by_artist("Blinding Lights") == ("Blinding Lights", None)

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Wild Thoughts (feat. Rihanna)", ("Wild Thoughts", "Rihanna")),
            ("Wild Thoughts (ft. Rihanna & Bryson Tiller)", ("Wild Thoughts", "Rihanna & Bryson Tiller")),
            ("Stay [with Justin Bieber]", ("Stay", "Justin Bieber")),
            ("Mask Off ft. Kendrick Lamar", ("Mask Off", "Kendrick Lamar")),
            ("Mask Off feat. Kendrick Lamar", ("Mask Off", "Kendrick Lamar")),
        ],
    )
    def test_extract_featured_artist(self, title: str, expected: tuple[str, str]) -> None:
        assert extract_featured_artist(title) == expected

    def test_extract_featured_artist_leaves_plain_titles(self) -> None:
        assert extract_featured_artist("Without Me") == ("Without Me", None)
        assert extract_featured_artist("Lift (Remix)") == ("Lift (Remix)", None)

    def test_strip_artist_parentheticals_removes_duplicate_credit(self) -> None:
        assert strip_artist_parentheticals("Say It (Kiana Ledé & Friend)", "Kiana Lede") == "Say It"

    def test_strip_artist_parentheticals_keeps_unrelated_content(self) -> None:
        assert (
            strip_artist_parentheticals("Say It (Acoustic)", "Kiana Lede") == "Say It (Acoustic)"
        )

    def test_strip_artist_parentheticals_needs_two_words_for_long_names(self) -> None:
        # Only one of the two artist words appears
        assert strip_artist_parentheticals("Song (Kiana Edit)", "Kiana Lede") == "Song (Kiana Edit)"

    def test_strip_artist_parentheticals_single_word_artist(self) -> None:
        assert strip_artist_parentheticals("Hello (Adele Live)", "Adele") == "Hello"

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Song Name - Remastered 2011", "Song Name"),
            ("Song Name | Live at Wembley", "Song Name"),
            ("Anti-Hero", "Anti-Hero"),
            ("Song-Remix", "Song-Remix"),
            ("Song -Remix", "Song -Remix"),
            ("Plain", "Plain"),
        ],
    )
    def test_truncate_at_separator(self, title: str, expected: str) -> None:
        assert truncate_at_separator(title) == expected


class TestNormalizeQuery:
    """Test the full normalization chain."""

    def test_by_pattern_without_artist(self) -> None:
        query = normalize_query("Blinding Lights by The Weeknd")
        assert query.song == "Blinding Lights"
        assert query.artist == "The Weeknd"

    def test_by_pattern_ignored_when_artist_given(self) -> None:
        query = normalize_query("Stand by Me", "Ben E. King")
        assert query.song == "Stand by Me"
        assert query.artist == "Ben E. King"

    def test_featured_artist_extraction(self) -> None:
        query = normalize_query("Wild Thoughts (feat. Rihanna)")
        assert query.song == "Wild Thoughts"
        assert query.featured_artist == "Rihanna"

    def test_featured_artist_promoted_when_no_artist(self) -> None:
        assert normalize_query("Wild Thoughts (feat. Rihanna)").artist == "Rihanna"

    def test_featured_artist_not_promoted_over_supplied_artist(self) -> None:
        query = normalize_query("Wild Thoughts (feat. Rihanna)", "DJ Khaled")
        assert query.artist == "DJ Khaled"
        assert query.featured_artist == "Rihanna"

    def test_duplicate_collaborator_credit_removed(self) -> None:
        query = normalize_query("Say It (Kiana Ledé & Friend) - Remastered", "Kiana Lede")
        assert query == NormalizedQuery(song="Say It", artist="Kiana Lede")

    def test_whitespace_collapsed_and_artist_trimmed(self) -> None:
        query = normalize_query("  Say   It  ", "  Kiana Lede ")
        assert query.song == "Say It"
        assert query.artist == "Kiana Lede"

    def test_blank_artist_treated_as_missing(self) -> None:
        assert normalize_query("Say It", "   ").artist is None

    def test_never_returns_empty_song(self) -> None:
        query = normalize_query("(feat. Rihanna)")
        assert query.song != ""


class TestNormalizedQuery:
    """Test derived artist views."""

    def test_primary_and_featured_artists(self) -> None:
        query = NormalizedQuery(
            song="Wild Thoughts",
            artist="DJ Khaled, Rihanna",
            featured_artist="Rihanna & Bryson Tiller",
        )
        assert query.primary_artist == "DJ Khaled"
        # Rihanna credited twice, listed once
        assert query.featured_artists == ["Rihanna", "Bryson Tiller"]

    def test_no_artist(self) -> None:
        query = NormalizedQuery(song="Hello")
        assert query.primary_artist is None
        assert query.featured_artists == []


class TestBuildSearchQueries:
    """Test fan-out query wording."""

    def test_with_artist(self) -> None:
        queries = build_search_queries(NormalizedQuery(song="Say It", artist="Kiana Lede"))
        assert queries == ["Kiana Lede", "Kiana Lede Say It", "Say It Kiana Lede", "Say It"]

    def test_without_artist(self) -> None:
        assert build_search_queries(NormalizedQuery(song="Say It")) == ["Say It"]

    def test_duplicates_removed(self) -> None:
        # Artist alone == song alone
        queries = build_search_queries(NormalizedQuery(song="Adele", artist="adele"))
        assert queries == ["adele", "adele Adele"]
