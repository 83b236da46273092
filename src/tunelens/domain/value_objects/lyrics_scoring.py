"""Heuristic scoring of lyrics search candidates.

Hey future me - Genius search is recall-oriented: "Say It Kiana Lede" happily returns
the Spanish translation page, a karaoke cover and some "Genius Playlist" curator
account before the real song. This module ranks those hits against the cleaned query.

Points (integer, start at 0):

    translation marker in title/artist           -15
    ...and it translates the full collaboration   -25 (extra)
    cover/remix/live/acoustic/... marker          -8
    curator/playlist/compilation artist           -15
    each song word found in candidate title       +3
    each artist word found in candidate title     +2
    exact title AND exact artist                  +15  (else exact title only: +8)
    candidate artist == query artist              +8
    candidate artist contains primary artist      +5
    each featured artist found in candidate       +2

The best score wins, ties go to the first candidate encountered. There is NO minimum
score: a negative winner is still a winner (often the right song with a noisy title).
Only an empty candidate list is a "no match".
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from tunelens.domain.entities import LyricsCandidate
from tunelens.domain.exceptions import LyricsNotFoundError
from tunelens.domain.value_objects.lyrics_query import (
    NormalizedQuery,
    fold_text,
    split_artists,
    words,
)

TRANSLATION_PENALTY = -15
COLLABORATION_TRANSLATION_PENALTY = -25
VARIANT_PENALTY = -8
CURATOR_PENALTY = -15
SONG_WORD_BONUS = 3
ARTIST_WORD_BONUS = 2
EXACT_MATCH_BONUS = 15
EXACT_TITLE_BONUS = 8
EXACT_ARTIST_BONUS = 8
PRIMARY_ARTIST_BONUS = 5
FEATURED_ARTIST_BONUS = 2

# Genius hosts translations as separate songs, usually credited to
# "Genius <Language> Translations" or titled "<Song> (<Language> Translation)".
TRANSLATION_MARKERS: tuple[str, ...] = (
    "translation",
    "traducción",
    "traduccion",
    "tradução",
    "traducao",
    "traduction",
    "traduzione",
    "übersetzung",
    "ubersetzung",
    "перевод",
    "çeviri",
    "tłumaczenie",
    "vertaling",
    "terjemahan",
    "romanized",
    "romanization",
    "翻訳",
    "번역",
    "翻译",
)

_LANGUAGE_VERSION = re.compile(
    r"\b(?:english|spanish|español|french|français|german|deutsch|portuguese|português|"
    r"italian|italiano|turkish|türkçe|russian|polish|dutch|japanese|korean|chinese|"
    r"arabic|hindi|indonesian)\s+(?:version|translation)\b",
    re.IGNORECASE,
)

_VARIANT_MARKER = re.compile(
    r"\b(?:cover|remix|live|acoustic|instrumental|karaoke|tribute)\b"
    r"|\b(?:feat|ft)\.|[\(\[]\s*with\b",
    re.IGNORECASE,
)

_CURATOR_MARKER = re.compile(
    r"\b(?:playlists?|various artists|genius|compilation|spotify|billboard|top hits)\b",
    re.IGNORECASE,
)


def is_translation(candidate: LyricsCandidate) -> bool:
    """Title or artist marks the page as a translation/romanization."""
    for text in (candidate.title, candidate.artist):
        lowered = text.casefold()
        if any(marker in lowered for marker in TRANSLATION_MARKERS):
            return True
        if _LANGUAGE_VERSION.search(text):
            return True
    return False


def is_cover_or_variant(candidate: LyricsCandidate) -> bool:
    """Title or artist marks the page as a cover, remix, live take, etc."""
    return bool(
        _VARIANT_MARKER.search(candidate.title) or _VARIANT_MARKER.search(candidate.artist)
    )


def is_curator_account(candidate: LyricsCandidate) -> bool:
    """Artist is a playlist/compilation/curator account rather than a performer."""
    return bool(_CURATOR_MARKER.search(candidate.artist))


def _translates_collaboration(candidate: LyricsCandidate, artist: str | None) -> bool:
    names = [fold_text(name) for name in split_artists(artist)]
    if not names:
        return False
    haystack = fold_text(f"{candidate.title} {candidate.artist}")
    matched = sum(1 for name in names if name and name in haystack)
    return matched >= min(2, len(names))


def score_candidate(candidate: LyricsCandidate, query: NormalizedQuery) -> int:
    """Score one candidate against the cleaned query (higher is better)."""
    score = 0

    title = fold_text(candidate.title)
    artist = fold_text(candidate.artist)
    title_words = set(words(candidate.title))

    if is_translation(candidate):
        score += TRANSLATION_PENALTY
        if _translates_collaboration(candidate, query.artist):
            score += COLLABORATION_TRANSLATION_PENALTY

    if is_cover_or_variant(candidate):
        score += VARIANT_PENALTY

    if is_curator_account(candidate):
        score += CURATOR_PENALTY

    score += SONG_WORD_BONUS * sum(1 for word in words(query.song) if word in title_words)
    score += ARTIST_WORD_BONUS * sum(
        1 for word in words(query.artist) if word in title_words
    )

    query_song = fold_text(query.song)
    query_artist = fold_text(query.artist) if query.artist else None

    if title == query_song and query_artist is not None and artist == query_artist:
        score += EXACT_MATCH_BONUS
    elif title == query_song:
        score += EXACT_TITLE_BONUS

    if query_artist is not None and artist == query_artist:
        score += EXACT_ARTIST_BONUS

    primary = fold_text(query.primary_artist or "")
    if len(primary) > 2 and primary in artist:
        score += PRIMARY_ARTIST_BONUS

    for featured in query.featured_artists:
        token = fold_text(featured)
        if len(token) > 2 and token in artist:
            score += FEATURED_ARTIST_BONUS

    return score


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate together with its heuristic score."""

    candidate: LyricsCandidate
    score: int


def rank_candidates(
    candidates: Iterable[LyricsCandidate], query: NormalizedQuery
) -> list[ScoredCandidate]:
    """Score every candidate, keeping input order (no sorting)."""
    return [
        ScoredCandidate(candidate, score_candidate(candidate, query)) for candidate in candidates
    ]


def select_best_candidate(
    candidates: Iterable[LyricsCandidate], query: NormalizedQuery
) -> ScoredCandidate:
    """Pick the highest scoring candidate, first one wins ties.

    Raises:
        LyricsNotFoundError: (no_matching_song) if there is nothing to choose from
    """
    best: ScoredCandidate | None = None
    for scored in rank_candidates(candidates, query):
        # Strict ">" keeps the first-encountered candidate on ties
        if best is None or scored.score > best.score:
            best = scored

    if best is None:
        raise LyricsNotFoundError(LyricsNotFoundError.NO_MATCHING_SONG)
    return best


__all__ = [
    "ScoredCandidate",
    "TRANSLATION_MARKERS",
    "is_cover_or_variant",
    "is_curator_account",
    "is_translation",
    "rank_candidates",
    "score_candidate",
    "select_best_candidate",
]
