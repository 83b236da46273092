"""HTML scraping of lyrics pages."""

from .lyrics_extractor import GeniusLyricsExtractor, clean_lyrics_lines

__all__ = ["GeniusLyricsExtractor", "clean_lyrics_lines"]
