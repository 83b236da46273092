"""Caching layer for application services."""

from tunelens.application.cache.lyrics_cache import BaseCache, LyricsCache, make_cache_key

__all__ = ["BaseCache", "LyricsCache", "make_cache_key"]
