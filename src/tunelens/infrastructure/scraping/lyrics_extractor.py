"""Lyrics extraction from Genius song pages.

Hey future me - this is the ONLY file that knows what a Genius page looks like. Their
markup uses hashed styled-components class names ("LyricsHeader__Container-sc-d6abeb2b-1")
that change on every frontend deploy, so we match on the stable prefix via [class*=...]
instead of the full class. When extraction suddenly returns junk, fix the selectors here.
"""

import logging
import re

from bs4 import BeautifulSoup, Tag

from tunelens.domain.ports import ILyricsExtractor

logger = logging.getLogger(__name__)

LYRICS_CONTAINER_SELECTOR = 'div[data-lyrics-container="true"]'

# Non-lyric substructure nested inside the containers
NOISE_SELECTORS: tuple[str, ...] = (
    '[data-exclude-from-selection="true"]',
    '[class*="LyricsHeader"]',
    '[class*="ContributorsCreditSong"]',
    '[class*="SongBioPreview"]',
    "button",
    "svg",
    '[class*="Dropdown__Container"]',
    '[class*="Header"]',
    '[class*="Tooltip"]',
    '[class*="Metadata"]',
    # invisible / decorative overlays
    '[style*="opacity:0"]',
    '[style*="position:absolute"]',
    '[tabindex="0"][style*="pointer-events:none"]',
)

# Page chrome, dropped wherever it shows up. Case-sensitive: "read more" in a verse stays.
BOILERPLATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d+\s+Contributors?$"),
    re.compile(r"^Read More\b"),
    re.compile(r"^Translations$"),
)

# Only dropped before the first lyric line of a container: the "<Title> Lyrics" header
# and the song-bio blurb sit there, lyrics later on may well look the same.
HEADER_PATTERNS: tuple[re.Pattern[str], ...] = (re.compile(r"^.+ Lyrics$"),)

BOILERPLATE_FRAGMENTS: tuple[str, ...] = (
    "is a melodic piece",
    "collaboration between",
)


def is_boilerplate_line(line: str) -> bool:
    """True for page chrome lines (contributor counts, Read More, Translations)."""
    return any(pattern.search(line) for pattern in BOILERPLATE_PATTERNS)


def is_header_line(line: str) -> bool:
    """True for title headers and song-bio blurbs that precede the lyrics."""
    if any(pattern.search(line) for pattern in HEADER_PATTERNS):
        return True
    return any(fragment in line for fragment in BOILERPLATE_FRAGMENTS)


def clean_lyrics_lines(text: str) -> list[str]:
    """Trim every line and keep the non-empty, non-boilerplate ones in order.

    Example:
        >>> clean_lyrics_lines("3 Contributors\\nSay It Lyrics\\nHello\\n\\nIt's me")
        ['Hello', "It's me"]
    """
    lines: list[str] = []
    for raw in text.split("\n"):
        line = raw.strip()
        if not line or is_boilerplate_line(line):
            continue
        if not lines and is_header_line(line):
            continue
        lines.append(line)
    return lines


class GeniusLyricsExtractor(ILyricsExtractor):
    """Extract plain lyrics text from a Genius song page with BeautifulSoup."""

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser

    def _container_text(self, container: Tag) -> str:
        for selector in NOISE_SELECTORS:
            for element in container.select(selector):
                # Already gone with an earlier match's subtree
                if element.decomposed:
                    continue
                element.decompose()

        for br in container.find_all("br"):
            br.replace_with("\n")

        return container.get_text()

    def extract(self, html: str) -> str:
        """Extract cleaned lyrics from raw page HTML.

        Every lyrics container contributes its surviving lines joined by newlines,
        containers follow document order. Returns "" when the page has no containers.
        """
        soup = BeautifulSoup(html, self.parser)
        containers = soup.select(LYRICS_CONTAINER_SELECTOR)
        if not containers:
            logger.debug("No lyrics containers found in page")
            return ""

        blocks = []
        for container in containers:
            lines = clean_lyrics_lines(self._container_text(container))
            if lines:
                blocks.append("\n".join(lines))

        return "\n".join(blocks).strip()


__all__ = [
    "GeniusLyricsExtractor",
    "clean_lyrics_lines",
    "is_boilerplate_line",
    "is_header_line",
]
