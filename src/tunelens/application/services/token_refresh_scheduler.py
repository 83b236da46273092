"""Token Refresh Scheduler - keeps Spotify access tokens alive.

Hey future me - this does TWO related jobs:

1. ensure_fresh(session_id) - the SYNCHRONOUS guard every request/poll calls first.
   If the access token expires within refresh_skew_seconds (60s) we refresh right now,
   before returning. Outside that window it's a pure read, zero network calls.

2. Silent renewal - one asyncio task per session sleeping until
   expires_at - renewal_lead_seconds (5 min), then refreshing and registering its
   successor. Tasks live in a registry keyed by session id, so cancel() is a dict pop
   and nothing leaks.

FAILURE POLICY:
- ensure_fresh, refresh token rejected (invalid_grant, 401/403) -> SessionExpiredError.
  Only this verdict lets callers delete the session.
- ensure_fresh, token endpoint down or 5xx -> ExternalServiceError. Transient: the session
  survives, the caller never gets a stale token, the next call tries again.
- scheduled refresh failure -> log, drop the registry entry, DON'T reschedule. The session
  goes dormant; the next live request runs ensure_fresh, which refreshes again or
  reports the same verdict.

Two listeners on the same session may both hit ensure_fresh inside the skew window and
refresh twice. That's accepted - Spotify's refresh is idempotent in effect and the newest
token pair wins in the store.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from tunelens.domain.entities import Session, now_ms
from tunelens.domain.exceptions import (
    DomainException,
    ExternalServiceError,
    SessionExpiredError,
    TokenRefreshException,
)
from tunelens.domain.ports import ITokenStore
from tunelens.infrastructure.integrations.spotify_client import SpotifyClient
from tunelens.infrastructure.observability import short_id

logger = logging.getLogger(__name__)


class TokenRefreshScheduler:
    """Refresh-on-demand guard plus a registry of silent renewal timers."""

    def __init__(
        self,
        client: SpotifyClient,
        token_store: ITokenStore,
        refresh_skew_seconds: int = 60,
        renewal_lead_seconds: int = 300,
        default_expires_in: int = 3600,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the scheduler.

        Args:
            client: Spotify client (token endpoint)
            token_store: Where refreshed tokens get persisted
            refresh_skew_seconds: ensure_fresh refreshes when expiry is this close
            renewal_lead_seconds: Silent renewal fires this long before expiry
            default_expires_in: Fallback lifetime if the token response omits expires_in
            clock: Epoch milliseconds source (tests inject a fake one)
        """
        self._client = client
        self._token_store = token_store
        self._refresh_skew_seconds = refresh_skew_seconds
        self._renewal_lead_seconds = renewal_lead_seconds
        self._default_expires_in = default_expires_in
        self._clock = clock
        self._timers: dict[str, asyncio.Task[None]] = {}

    @property
    def scheduled_session_ids(self) -> list[str]:
        """Session ids with a live renewal timer."""
        return sorted(self._timers)

    def expires_at_from(self, token_data: dict[str, Any]) -> int:
        """Absolute expiry (epoch ms) of a token endpoint response."""
        expires_in = int(token_data.get("expires_in") or self._default_expires_in)
        return self._clock() + expires_in * 1000

    async def ensure_fresh(self, session_id: str) -> Session:
        """Return the session with a usable access token, refreshing if needed.

        Raises:
            SessionExpiredError: Unknown session, or the refresh token was rejected
                (re-auth required)
            ExternalServiceError: Token endpoint unreachable or 5xx, session kept
        """
        session = await self._token_store.get(session_id)
        if session is None:
            raise SessionExpiredError("Invalid session", session_id=session_id)

        if not session.expires_within(self._refresh_skew_seconds, now=self._clock()):
            return session

        logger.debug("Access token of session %s near expiry, refreshing", short_id(session_id))
        try:
            return await self.refresh(session)
        except TokenRefreshException as e:
            if not e.requires_reauth:
                logger.warning(
                    "Token refresh for session %s refused without a verdict: %s",
                    short_id(session_id),
                    e.message,
                )
                raise ExternalServiceError(e.message, status_code=e.http_status) from e
            logger.info(
                "Refresh token rejected for session %s (%s)", short_id(session_id), e.error_code
            )
            raise SessionExpiredError(session_id=session_id) from e
        except ExternalServiceError as e:
            # Outage at the token endpoint: the refresh token may still be good
            logger.warning("Token refresh failed for session %s: %s", short_id(session_id), e)
            raise

    async def refresh(self, session: Session) -> Session:
        """Exchange the refresh token, persist the new pair and reschedule renewal.

        Raises:
            TokenRefreshException: Refresh token revoked/invalid
            ExternalServiceError: Token endpoint unreachable or 5xx
        """
        token_data = await self._client.refresh_token(session.refresh_token)
        updated = session.with_tokens(
            access_token=token_data["access_token"],
            expires_at=self.expires_at_from(token_data),
            refresh_token=token_data.get("refresh_token"),
        )
        await self._token_store.put(updated)
        logger.info("Refreshed access token for session %s", short_id(session.session_id))

        self.schedule(updated)
        return updated

    def schedule(self, session: Session) -> None:
        """(Re)arm the silent renewal timer of a session.

        Replaces any existing timer. When called from inside the timer that is being
        replaced (the recursive reschedule), that task is left to finish on its own.
        """
        delay_ms = session.expires_at - self._renewal_lead_seconds * 1000 - self._clock()
        delay = max(0.0, delay_ms / 1000)

        existing = self._timers.get(session.session_id)
        if existing is not None and existing is not asyncio.current_task():
            existing.cancel()

        self._timers[session.session_id] = asyncio.create_task(
            self._renew_later(session.session_id, delay),
            name=f"token-renewal-{short_id(session.session_id)}",
        )
        logger.debug(
            "Silent renewal for session %s in %.0fs", short_id(session.session_id), delay
        )

    def cancel(self, session_id: str) -> bool:
        """Cancel the renewal timer of a session. Safe for unknown ids."""
        task = self._timers.pop(session_id, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        return True

    async def _renew_later(self, session_id: str, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
            session = await self._token_store.get(session_id)
            if session is None:
                logger.debug("Session %s gone, renewal dropped", short_id(session_id))
                return
            # refresh() registers the successor timer
            await self.refresh(session)
        except (TokenRefreshException, ExternalServiceError) as e:
            logger.warning(
                "Silent renewal failed for session %s, not rescheduling: %s",
                short_id(session_id),
                e.message,
            )
        except DomainException as e:
            logger.warning("Silent renewal error for session %s: %s", short_id(session_id), e)
        finally:
            # Drop OUR registry entry only - a successor may already sit there
            if self._timers.get(session_id) is asyncio.current_task():
                del self._timers[session_id]

    def restore(self, sessions: Iterable[Session]) -> int:
        """Re-arm timers at boot for sessions expiring more than the lead time from now.

        Sessions closer to expiry are left alone, ensure_fresh handles them on first use.

        Returns:
            Number of timers armed
        """
        now = self._clock()
        lead_ms = self._renewal_lead_seconds * 1000
        armed = 0
        for session in sessions:
            if session.expires_at - now > lead_ms:
                self.schedule(session)
                armed += 1
        return armed

    async def restore_from_store(self) -> int:
        """Load every persisted session and restore its renewal timer."""
        sessions = await self._token_store.list_all()
        armed = self.restore(sessions)
        logger.info("Restored %d/%d renewal timers from store", armed, len(sessions))
        return armed

    async def shutdown(self) -> None:
        """Cancel every renewal timer and wait for them to finish."""
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Token refresh scheduler stopped (%d timers cancelled)", len(tasks))


__all__ = ["TokenRefreshScheduler"]
