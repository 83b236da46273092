"""Domain entities."""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any


def now_ms() -> int:
    """Current wall clock time as epoch milliseconds."""
    return int(time.time() * 1000)


# Hey future me, Session is THE credential record. expires_at is epoch MILLISECONDS (not a
# datetime) because every consumer does arithmetic on it (now >= expires_at - skew) and the
# playback payloads are ms-based too. Exactly one row per session_id; refresh mutates in place.
@dataclass
class Session:
    """Server-side record binding an opaque id to a Spotify token pair."""

    session_id: str
    access_token: str
    refresh_token: str
    expires_at: int
    created_at: datetime | None = None

    def expires_within(self, seconds: float, now: int | None = None) -> bool:
        """True if the access token expires within the given number of seconds."""
        current = now_ms() if now is None else now
        return current >= self.expires_at - int(seconds * 1000)

    def with_tokens(
        self, access_token: str, expires_at: int, refresh_token: str | None = None
    ) -> "Session":
        """Return a copy carrying a freshly issued token pair.

        Spotify does not always rotate the refresh token - keep the old one when
        the token endpoint leaves it out.
        """
        return replace(
            self,
            access_token=access_token,
            expires_at=expires_at,
            refresh_token=refresh_token or self.refresh_token,
        )


@dataclass(frozen=True)
class TrackInfo:
    """Track descriptor shown on the dashboard."""

    name: str | None = None
    artists: str | None = None
    album: str | None = None
    image: str | None = None
    uri: str | None = None

    @classmethod
    def from_spotify_item(cls, item: dict[str, Any] | None) -> "TrackInfo":
        """Build from a Spotify track object (the "item" of currently-playing)."""
        if not item:
            return cls()
        images = (item.get("album") or {}).get("images") or []
        return cls(
            name=item.get("name"),
            artists=", ".join(a.get("name", "") for a in item.get("artists") or []),
            album=(item.get("album") or {}).get("name"),
            image=images[0].get("url") if images else None,
            uri=item.get("uri"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "artists": self.artists,
            "album": self.album,
            "image": self.image,
            "uri": self.uri,
        }


# Yo, PlaybackSnapshot is the last known playback state of a SESSION (not of a socket). It is
# replaced wholesale by the poll path and read-only for everyone else, so frozen=True. The
# interpolated copies the emit loop sends out are derived with dataclasses.replace().
@dataclass(frozen=True)
class PlaybackSnapshot:
    """Last known playback state, shared by every listener of a session."""

    is_playing: bool
    progress: int | None = None
    duration: int | None = None
    track: TrackInfo | None = None
    timestamp: int = field(default_factory=now_ms)
    estimated: bool = False

    @classmethod
    def not_playing(cls, timestamp: int | None = None) -> "PlaybackSnapshot":
        return cls(is_playing=False, timestamp=now_ms() if timestamp is None else timestamp)

    @classmethod
    def from_currently_playing(
        cls, data: dict[str, Any], timestamp: int | None = None
    ) -> "PlaybackSnapshot":
        """Build from Spotify's /me/player/currently-playing payload."""
        item = data.get("item") or {}
        return cls(
            is_playing=bool(data.get("is_playing")),
            progress=data.get("progress_ms"),
            duration=item.get("duration_ms"),
            track=TrackInfo.from_spotify_item(item),
            timestamp=now_ms() if timestamp is None else timestamp,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire payload of the playback-update event (camelCase for the frontend)."""
        if not self.is_playing and self.track is None:
            payload: dict[str, Any] = {"isPlaying": False}
        else:
            payload = {
                "isPlaying": self.is_playing,
                "progress": self.progress,
                "duration": self.duration,
                "track": self.track.to_dict() if self.track else None,
                "timestamp": self.timestamp,
            }
        if self.estimated:
            payload["estimated"] = True
        return payload


@dataclass(frozen=True)
class LyricsCandidate:
    """One lyrics search hit considered during disambiguation."""

    title: str
    artist: str
    image: str | None
    url: str


@dataclass(frozen=True)
class LyricsResult:
    """Final resolved lyrics, exactly what /api/lyrics returns and the cache stores."""

    title: str
    artist: str
    image: str | None
    lyrics: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "artist": self.artist,
            "image": self.image,
            "lyrics": self.lyrics,
        }


__all__ = [
    "LyricsCandidate",
    "LyricsResult",
    "PlaybackSnapshot",
    "Session",
    "TrackInfo",
    "now_ms",
]
