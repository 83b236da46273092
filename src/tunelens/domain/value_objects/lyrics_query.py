"""Query normalization for lyrics search.

Hey future me - track titles coming from Spotify are NOISY:
- "Wild Thoughts (feat. Rihanna & Bryson Tiller)"
- "Blinding Lights by The Weeknd" (typed by a human, no artist field)
- "Song Name - Remastered 2011"
- "Say It (Kiana Ledé & Friend)" when the artist field already says "Kiana Ledé"

Genius search ranks garbage first if we pass that noise through, so we clean the
title BEFORE searching and hand the scorer a structured query. Every rule is a pure
function so each regex can be unit tested on its own.

Order of the rules (each one sees the output of the previous):
1. "X by Y" split (only when no artist was supplied)
2. featured-artist extraction: (feat. ...), (ft. ...), (with ...), inline feat./ft.
3. strip parentheticals that repeat the supplied artist's names
4. truncate at the first " - " or "|" separator. The dash only counts with whitespace on
   both sides: "Song-Remix" stays whole, just like "Anti-Hero".

Examples:
    >>> normalize_query("Blinding Lights by The Weeknd")
    NormalizedQuery(song='Blinding Lights', artist='The Weeknd', featured_artist=None)
    >>> normalize_query("Wild Thoughts (feat. Rihanna)").featured_artist
    'Rihanna'
"""

import re
import unicodedata
from dataclasses import dataclass

_BY_PATTERN = re.compile(r"^(?P<song>.+?)\s+by\s+(?P<artist>.+)$", re.IGNORECASE)

_FEATURED_PARENTHETICAL = re.compile(
    r"\s*[\(\[]\s*(?:feat\.?|ft\.?|featuring|with)\s+(?P<featured>[^\)\]]+?)\s*[\)\]]",
    re.IGNORECASE,
)
_FEATURED_INLINE = re.compile(
    r"\s+(?:feat\.?|ft\.?|featuring)\s+(?P<featured>.+)$", re.IGNORECASE
)

_PARENTHETICAL = re.compile(r"\s*[\(\[](?P<content>[^\)\]]*)[\)\]]")

# Dash needs surrounding whitespace, otherwise "Anti-Hero" would become "Anti"
_SEPARATOR = re.compile(r"\s+-\s+|\s*\|\s*")

_ARTIST_SEPARATOR = re.compile(
    r"\s*(?:,|&|\b(?:ft|feat)\.?(?=\s)|\bfeaturing\b|\bwith\b)\s*", re.IGNORECASE
)

_WORD = re.compile(r"\w+")
_WHITESPACE = re.compile(r"\s+")


def fold_text(text: str) -> str:
    """Lowercase and strip accents so "Ledé" compares equal to "Lede"."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().strip()


def words(text: str | None) -> list[str]:
    """Folded word tokens of a string, in order (duplicates kept)."""
    if not text:
        return []
    return _WORD.findall(fold_text(text))


def split_artists(artist: str | None) -> list[str]:
    """Split an artist credit into individual names.

    Examples:
        >>> split_artists("Rihanna, Bryson Tiller & DJ Khaled")
        ['Rihanna', 'Bryson Tiller', 'DJ Khaled']
        >>> split_artists("Drake feat. Future")
        ['Drake', 'Future']
    """
    if not artist:
        return []
    return [part.strip() for part in _ARTIST_SEPARATOR.split(artist) if part and part.strip()]


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


@dataclass(frozen=True)
class NormalizedQuery:
    """Cleaned song name plus whatever artist information we could recover."""

    song: str
    artist: str | None = None
    featured_artist: str | None = None

    @property
    def artist_names(self) -> list[str]:
        """Individual artist names of the cleaned artist credit."""
        return split_artists(self.artist)

    @property
    def primary_artist(self) -> str | None:
        """First (pre-collaborator) artist name."""
        names = self.artist_names
        return names[0] if names else None

    @property
    def featured_artists(self) -> list[str]:
        """Collaborators: the non-primary credited names plus any extracted feature."""
        names = self.artist_names[1:] + split_artists(self.featured_artist)
        primary = fold_text(self.primary_artist or "")
        seen: set[str] = set()
        result = []
        for name in names:
            key = fold_text(name)
            if key == primary or key in seen:
                continue
            seen.add(key)
            result.append(name)
        return result


def split_by_artist(song: str) -> tuple[str, str | None]:
    """Split "Song by Artist" into its parts, or return the song untouched."""
    match = _BY_PATTERN.match(song.strip())
    if not match:
        return song, None
    return match.group("song").strip(), match.group("artist").strip()


def extract_featured_artist(song: str) -> tuple[str, str | None]:
    """Remove a featured-artist annotation from a title.

    Parenthetical forms win over inline ones.

    Examples:
        >>> extract_featured_artist("Wild Thoughts (feat. Rihanna)")
        ('Wild Thoughts', 'Rihanna')
        >>> extract_featured_artist("Mask Off ft. Kendrick Lamar")
        ('Mask Off', 'Kendrick Lamar')
    """
    match = _FEATURED_PARENTHETICAL.search(song)
    if match:
        cleaned = song[: match.start()] + song[match.end() :]
        return _collapse(cleaned), match.group("featured").strip()

    match = _FEATURED_INLINE.search(song)
    if match:
        return _collapse(song[: match.start()]), match.group("featured").strip()

    return song, None


def strip_artist_parentheticals(song: str, artist: str) -> str:
    """Drop parentheticals that merely repeat the credited artists.

    A parenthetical goes if at least min(2, number of artist words) of the artist's
    words appear in it - "(Kiana Ledé & Friend)" next to artist "Kiana Lede" is a
    duplicate collaborator credit, not part of the song name.
    """
    artist_words = words(artist)
    required = min(2, len(artist_words))
    if required == 0:
        return song

    def _replace(match: re.Match[str]) -> str:
        content_words = set(words(match.group("content")))
        matched = sum(1 for word in artist_words if word in content_words)
        return "" if matched >= required else match.group(0)

    return _collapse(_PARENTHETICAL.sub(_replace, song))


def truncate_at_separator(song: str) -> str:
    """Cut the title at the first " - " or "|" (disambiguators like "- Remastered")."""
    head = _SEPARATOR.split(song, maxsplit=1)[0]
    return head.strip() or song.strip()


def normalize_query(song: str, artist: str | None = None) -> NormalizedQuery:
    """Run all cleaning rules and return the structured query.

    Args:
        song: Raw track title as received
        artist: Artist credit if the caller knows it

    Returns:
        NormalizedQuery with cleaned song, artist and extracted featured artist
    """
    supplied_artist = artist.strip() if artist and artist.strip() else None
    cleaned = _collapse(song)
    resolved_artist = supplied_artist

    if resolved_artist is None:
        cleaned, resolved_artist = split_by_artist(cleaned)

    cleaned, featured = extract_featured_artist(cleaned)
    if resolved_artist is None and featured:
        resolved_artist = featured

    if supplied_artist:
        cleaned = strip_artist_parentheticals(cleaned, supplied_artist)

    cleaned = truncate_at_separator(cleaned)

    # Never hand an empty song name to search, fall back to the raw title
    if not cleaned:
        cleaned = _collapse(song)

    return NormalizedQuery(song=cleaned, artist=resolved_artist, featured_artist=featured)


def build_search_queries(query: NormalizedQuery) -> list[str]:
    """Fan-out search strings, most specific recall first, duplicates removed.

    With a known artist: artist alone, "artist song", "song artist", then the song
    alone. Without one: just the song.
    """
    candidates = []
    if query.artist:
        candidates.extend(
            [
                query.artist,
                f"{query.artist} {query.song}",
                f"{query.song} {query.artist}",
            ]
        )
    candidates.append(query.song)

    seen: set[str] = set()
    unique = []
    for candidate in candidates:
        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


__all__ = [
    "NormalizedQuery",
    "build_search_queries",
    "extract_featured_artist",
    "fold_text",
    "normalize_query",
    "split_artists",
    "split_by_artist",
    "strip_artist_parentheticals",
    "truncate_at_separator",
    "words",
]
