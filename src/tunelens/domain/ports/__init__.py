"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod

from tunelens.domain.entities import LyricsCandidate, Session


class ISessionRepository(ABC):
    """Repository interface for Session entities (OAuth persistence)."""

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        """Get session by ID."""
        pass

    @abstractmethod
    async def upsert(self, session: Session) -> None:
        """Insert a session or overwrite the existing row with the same ID."""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session by ID. Returns True if a row was removed."""
        pass

    @abstractmethod
    async def list_all(self) -> list[Session]:
        """List every persisted session (boot-time timer reconstruction)."""
        pass


class ITokenStore(ABC):
    """Durable keyed storage of session credentials.

    Hey future me - this is the contract both engines depend on. Implementations
    own their transactions: every call is self-contained, callers never commit.
    """

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        """Return the session or None if not found."""
        pass

    @abstractmethod
    async def put(self, session: Session) -> None:
        """Upsert the session."""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete the session. Safe to call for unknown IDs."""
        pass

    @abstractmethod
    async def list_all(self) -> list[Session]:
        """Return all sessions."""
        pass


class ILyricsSearchClient(ABC):
    """Text search against a lyrics catalogue."""

    @abstractmethod
    async def search(self, query: str) -> list[LyricsCandidate]:
        """Search for songs, returning normalized hits in provider order."""
        pass

    @abstractmethod
    async def fetch_page(self, url: str) -> str:
        """Fetch a lyrics page and return its raw HTML."""
        pass


class ILyricsExtractor(ABC):
    """Turns a raw lyrics page into plain text.

    Hey future me - ALL markup knowledge (class names, data attributes, style hacks)
    lives behind this interface. When the provider reshuffles its HTML, only the
    implementation changes, the pipeline stays untouched.
    """

    @abstractmethod
    def extract(self, html: str) -> str:
        """Extract cleaned lyrics text from raw HTML."""
        pass


__all__ = [
    "ILyricsExtractor",
    "ILyricsSearchClient",
    "ISessionRepository",
    "ITokenStore",
]
