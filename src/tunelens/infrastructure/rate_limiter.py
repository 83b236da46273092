"""Shared token bucket rate limiters for upstream APIs.

Hey future me - every open dashboard runs its own poll loop and every lyrics lookup
fires several Genius searches at once. Without one bucket per upstream, a few dozen
tabs turn into a 429 storm. All Spotify and Genius traffic goes through here:

    async with get_spotify_limiter():
        response = await client.get(url)

On a 429 the caller awaits handle_rate_limit_response(retry_after), which sleeps for
Retry-After (or the current backoff, doubled on every consecutive 429) and drains the
bucket so concurrent callers queue behind it. A request that completes without raising
resets the backoff.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimiterConfig:
    """Bucket size, refill speed and backoff policy."""

    max_tokens: int = 10
    refill_rate: float = 2.0  # tokens per second
    max_backoff_seconds: float = 600.0
    initial_backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0


# Spotify allows roughly 180 requests/minute; 2/s sustained keeps headroom for the
# five-way dashboard fan-out. Retry-After from Spotify can be several minutes.
SPOTIFY_LIMITS = RateLimiterConfig(max_tokens=10, refill_rate=2.0, max_backoff_seconds=600.0)

# One lyrics lookup is up to 4 searches + 1 page fetch fired together; a bucket of 8
# lets a whole lookup through without queueing.
GENIUS_LIMITS = RateLimiterConfig(
    max_tokens=8, refill_rate=4.0, max_backoff_seconds=60.0, initial_backoff_seconds=0.5
)


@dataclass
class RateLimiter:
    """Token bucket with adaptive 429 backoff, used as an async context manager."""

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    _tokens: float = field(init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _current_backoff: float = field(init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.config.max_tokens)
        self._current_backoff = self.config.initial_backoff_seconds

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(
            float(self.config.max_tokens),
            self._tokens + (now - self._last_refill) * self.config.refill_rate,
        )
        self._last_refill = now

    def _try_take(self) -> float:
        """Take a token if one is available; otherwise return seconds until one is."""
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) / self.config.refill_rate

    async def acquire(self) -> None:
        """Wait for and consume one token."""
        while True:
            async with self._lock:
                wait = self._try_take()
            if wait == 0.0:
                return
            logger.debug("RateLimiter[%s]: bucket empty, waiting %.2fs", self.name, wait)
            await asyncio.sleep(wait)

    async def handle_rate_limit_response(self, retry_after: int | None = None) -> float:
        """Sleep after a 429 and escalate the backoff.

        Args:
            retry_after: Retry-After header value in seconds, if the upstream sent one

        Returns:
            Seconds actually waited (capped at max_backoff_seconds)
        """
        async with self._lock:
            requested = float(retry_after) if retry_after is not None else self._current_backoff
            wait = min(requested, self.config.max_backoff_seconds)
            logger.warning(
                "RateLimiter[%s]: 429 from upstream, waiting %.1fs (backoff %.1fs)",
                self.name,
                wait,
                self._current_backoff,
            )
            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            self._tokens = 0.0

        await asyncio.sleep(wait)
        return wait

    def reset_backoff(self) -> None:
        self._current_backoff = self.config.initial_backoff_seconds

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        if exc_type is None:
            self.reset_backoff()


_limiters: dict[str, RateLimiter] = {}


def _get_limiter(name: str, config: RateLimiterConfig) -> RateLimiter:
    limiter = _limiters.get(name)
    if limiter is None:
        limiter = _limiters[name] = RateLimiter(config, name=name)
    return limiter


def get_spotify_limiter() -> RateLimiter:
    """Process-wide limiter for the Spotify Web API and token endpoint."""
    return _get_limiter("spotify", SPOTIFY_LIMITS)


def get_genius_limiter() -> RateLimiter:
    """Process-wide limiter for Genius searches and lyrics page fetches."""
    return _get_limiter("genius", GENIUS_LIMITS)


__all__ = [
    "GENIUS_LIMITS",
    "SPOTIFY_LIMITS",
    "RateLimiter",
    "RateLimiterConfig",
    "get_genius_limiter",
    "get_spotify_limiter",
]
