"""Process-lifetime lyrics cache."""

import asyncio
import logging
from abc import ABC, abstractmethod

from tunelens.domain.entities import LyricsResult

logger = logging.getLogger(__name__)


def make_cache_key(songname: str, artist: str | None = None) -> str:
    """Composite cache key: the joined "song-artist" string, lowercased and trimmed.

    Only the ends of the joined string are trimmed, inner spaces around the dash stay.

    Examples:
        >>> make_cache_key("  Say It", "Kiana Ledé")
        'say it-kiana ledé'
        >>> make_cache_key("Hello ")
        'hello -'
    """
    return f"{songname}-{artist or ''}".lower().strip()


class BaseCache[K, V](ABC):
    """Base cache interface for all cache implementations."""

    @abstractmethod
    async def get(self, key: K) -> V | None:
        """Get value from cache, None if missing."""
        pass

    @abstractmethod
    async def set(self, key: K, value: V) -> None:
        """Set value in cache (overwrites)."""
        pass

    @abstractmethod
    async def delete(self, key: K) -> bool:
        """Delete value from cache. Returns True if it existed."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Clear all entries from cache."""
        pass


# Listen up future me, this cache has NO TTL on purpose - a resolved (song, artist) pair
# returns the same lyrics for the whole life of the process, stale or not. Restart the
# server to flush it. The lock keeps get/set atomic across concurrent lyrics requests.
class LyricsCache(BaseCache[str, LyricsResult]):
    """In-memory map of resolved lyrics keyed by make_cache_key()."""

    def __init__(self) -> None:
        self._entries: dict[str, LyricsResult] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> LyricsResult | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    async def set(self, key: str, value: LyricsResult) -> None:
        async with self._lock:
            self._entries[key] = value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, int]:
        """Cache statistics for the status endpoint (not locked, monitoring only)."""
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }


__all__ = ["BaseCache", "LyricsCache", "make_cache_key"]
