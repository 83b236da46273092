"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # Always raise a specific subclass so callers (poll loop, HTTP handlers) can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(DomainException):
    """Input validation failed (missing or malformed request parameter).

    HTTP Status: 400

    Example:
        raise ValidationError("Song name is required")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("SPOTIFY_CLIENT_ID is not configured")
    """

    pass


class AuthenticationError(DomainException):
    """Caller is not authenticated.

    HTTP Status: 401
    """

    pass


class SessionExpiredError(AuthenticationError):
    """Upstream rejected the session and nothing short of a new login fixes it.

    Hey future me - this is the ONE fatal error of the playback sync engine. Whoever
    catches it should tell the client to re-authenticate (needs_reauth) and stop
    retrying. The session row gets deleted by whoever owns the store.
    """

    def __init__(
        self,
        message: str = "Session expired",
        session_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.needs_reauth = True


class TokenRefreshException(DomainException):
    """Raised when the token endpoint refuses a refresh token.

    Common causes:
    - User revoked app access in Spotify settings
    - App credentials changed
    - Refresh token rotated by a concurrent refresh and the old one was reused
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please re-authenticate with Spotify.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires user re-authentication."""
        # 400 with invalid_grant means refresh token is dead, 401/403 mean access denied
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


class ExternalServiceError(DomainException):
    """External service (Spotify, Genius) failed: network error, 5xx, unexpected 4xx.

    HTTP Status: 500 for the dashboard ("Request failed").
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceededError(ExternalServiceError):
    """External service answered 429 Too Many Requests.

    Never fatal: the playback engine keeps serving its cached snapshot.
    """

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class LyricsNotFoundError(DomainException):
    """No lyrics candidate could be produced for a query.

    reason distinguishes the two failure points of the pipeline:
    - "no_songs_found": every fan-out search came back empty
    - "no_matching_song": the scorer had nothing to choose from
    Both map to HTTP 404.
    """

    NO_SONGS_FOUND = "no_songs_found"
    NO_MATCHING_SONG = "no_matching_song"

    _MESSAGES = {
        NO_SONGS_FOUND: "No songs found",
        NO_MATCHING_SONG: "No matching song found",
    }

    def __init__(self, reason: str) -> None:
        super().__init__(self._MESSAGES.get(reason, "No songs found"))
        self.reason = reason


class LyricsExtractionError(DomainException):
    """Fetching or parsing the lyrics page failed.

    The underlying cause is chained (raise ... from exc) and logged server side only;
    clients just see "Failed to fetch lyrics".
    """

    def __init__(self, message: str = "Failed to fetch lyrics") -> None:
        super().__init__(message)


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DomainException",
    "ExternalServiceError",
    "LyricsExtractionError",
    "LyricsNotFoundError",
    "RateLimitExceededError",
    "SessionExpiredError",
    "TokenRefreshException",
    "ValidationError",
]
